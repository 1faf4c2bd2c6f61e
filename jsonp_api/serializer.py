"""Serializer capability contract and the plain JSON serializer stage."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Protocol, runtime_checkable

from jsonp_api.errors import SerializationFailed
from jsonp_api.response import RequestLike, ResponseLike

logger = logging.getLogger(__name__)

Next = Callable[[RequestLike, ResponseLike], ResponseLike]


@runtime_checkable
class Serializer(Protocol):
    """What every serializer stage offers to the pipeline and the host."""

    mime_types: list[str]

    def accepts(self, content_type: str) -> bool: ...

    def register_mime_types(self, accept_types: list[str]) -> list[str]: ...

    def serialize(self, body: Any) -> str: ...

    def process(self, request: RequestLike, response: ResponseLike, next: Next) -> ResponseLike: ...


def media_type(content_type: str) -> str:
    """``"Text/JavaScript; charset=utf-8"`` -> ``"text/javascript"``."""
    return content_type.split(";", 1)[0].strip().lower()


def accepts(mime_types: Iterable[str], content_type: str) -> bool:
    return media_type(content_type) in {m.lower() for m in mime_types}


def register_mime_types(mime_types: Iterable[str], accept_types: list[str]) -> list[str]:
    """Append *mime_types* to the host's producible types, skipping duplicates."""
    for mime in mime_types:
        if mime not in accept_types:
            accept_types.append(mime)
    return accept_types


def encode_json(body: Any, message: str = "Could not serialize content to JSON") -> str:
    """Compact JSON text for *body*; raises SerializationFailed on bad input.

    ``bytes`` values must be valid UTF-8, NaN and Infinity are rejected and
    the resulting text must itself be encodable as UTF-8 (no lone surrogates).
    """
    try:
        text = json.dumps(
            body,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
            default=_decode_bytes,
        )
        text.encode("utf-8")
    except (TypeError, ValueError, RecursionError) as exc:
        # UnicodeError is a ValueError subclass
        raise SerializationFailed(message) from exc
    return text


def _decode_bytes(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonSerializer:
    """Pipeline stage writing the structured body as plain JSON."""

    def __init__(self, mime_types: list[str] | None = None):
        self.mime_types = list(mime_types) if mime_types is not None else ["application/json"]

    def accepts(self, content_type: str) -> bool:
        return accepts(self.mime_types, content_type)

    def register_mime_types(self, accept_types: list[str]) -> list[str]:
        return register_mime_types(self.mime_types, accept_types)

    def serialize(self, body: Any) -> str:
        return encode_json(body)

    def process(self, request: RequestLike, response: ResponseLike, next: Next) -> ResponseLike:
        response = next(request, response)
        if not self.accepts(response.content_type()):
            return response
        if not response.has_unserialized_body:
            logger.debug("No structured body on %r, leaving it as is", response)
            return response
        payload = self.serialize(response.unserialized_body())
        return response.with_body(payload.encode("utf-8"))
