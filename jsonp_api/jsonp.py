"""JSONP serializer stage.

Writes the structured response body as JSON wrapped in a client-chosen
callback, read from a request header (``X-Callback`` by default). Script-tag
clients cannot see HTTP status codes, so failing responses are rewritten to
200 with the original status added to the body as ``HttpStatus``.

See http://www.theguardian.com/info/developer-blog/2012/jul/16/http-status-codes-jsonp
"""

from __future__ import annotations

import logging
import re
from typing import Any

from jsonp_api.errors import BodyUnavailable
from jsonp_api.response import RequestLike, ResponseLike
from jsonp_api.serializer import Next, accepts, encode_json, register_mime_types

logger = logging.getLogger(__name__)

STATUS_KEY = "HttpStatus"

# Identifier, then any number of [123], ["..."] or ['...'] accessors.
_CALLBACK_SEGMENT = re.compile(
    r"""[a-zA-Z_$][0-9a-zA-Z_$]*"""
    r"""(?:\[(?:"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'|[0-9]+)\])*"""
)

RESERVED_WORDS = frozenset({
    "break", "do", "instanceof", "typeof", "case", "else", "new", "var",
    "catch", "finally", "return", "void", "continue", "for", "switch",
    "while", "debugger", "function", "this", "with", "default", "if",
    "throw", "delete", "in", "try", "class", "enum", "extends", "super",
    "const", "export", "import", "implements", "let", "private", "public",
    "yield", "interface", "package", "protected", "static",
    "null", "true", "false",
})


def is_valid_callback(name: str | None) -> bool:
    """True when *name* is safe to emit unescaped as a JS function reference.

    Dotted names (``window.app.cb``) are checked segment by segment.
    """
    if not name:
        return False
    for segment in name.split("."):
        if segment in RESERVED_WORDS:
            return False
        if _CALLBACK_SEGMENT.fullmatch(segment) is None:
            return False
    return True


class JsonpSerializer:
    """Pipeline stage producing ``callback(json)`` for JSONP responses.

    The instance holds configuration only; the callback resolved for a
    request lives in ``process`` so one instance can serve many threads.
    """

    def __init__(self, callback_header: str = "X-Callback", mime_types: list[str] | None = None):
        self.callback_header = callback_header
        self.mime_types = (
            list(mime_types) if mime_types is not None
            else ["application/javascript", "text/javascript"]
        )

    def accepts(self, content_type: str) -> bool:
        return accepts(self.mime_types, content_type)

    def register_mime_types(self, accept_types: list[str]) -> list[str]:
        return register_mime_types(self.mime_types, accept_types)

    def resolve_callback(self, request: RequestLike) -> str | None:
        if not request.has_header(self.callback_header):
            return None
        callback = request.header_value(self.callback_header)
        if not is_valid_callback(callback):
            logger.debug("Ignoring invalid JSONP callback %r", callback)
            return None
        return callback

    def serialize(self, body: Any, callback: str | None = None) -> str:
        json_text = encode_json(body, "Could not serialize content to JSONP")
        return f"{callback}({json_text})" if callback is not None else json_text

    def process(self, request: RequestLike, response: ResponseLike, next: Next) -> ResponseLike:
        response = next(request, response)
        if not self.accepts(response.content_type()):
            return response

        callback = self.resolve_callback(request)
        status = response.status_code

        if status != 200:
            if not response.has_unserialized_body:
                raise BodyUnavailable()
            body = response.unserialized_body()
            if isinstance(body, dict) and body and STATUS_KEY not in body:
                body = {**body, STATUS_KEY: status}
                response = response.with_unserialized_body(body)
            response = response.with_status(200)
            logger.debug("Rewrote JSONP status %s to 200", status)
        elif not response.has_unserialized_body:
            return response

        payload = self.serialize(response.unserialized_body(), callback)
        return response.with_body(payload.encode("utf-8"))
