"""Immutable response value and standard JSON envelope helpers."""

from __future__ import annotations

from typing import Any, Protocol

from jsonp_api.errors import BodyUnavailable
from jsonp_api.request import HeaderInput, normalize_headers

_NO_BODY: Any = object()


class Response:
    """An HTTP response. Every ``with_*`` call returns a new instance.

    Besides the final ``body`` bytes a response may carry the structured
    value it was built from (the *unserialized body*) so that serializer
    stages can re-encode it. Whether it does is exposed as
    ``has_unserialized_body`` rather than discovered by calling and failing.
    """

    __slots__ = ("status_code", "body", "_headers", "_unserialized")

    def __init__(
        self,
        status_code: int = 200,
        headers: HeaderInput = None,
        body: bytes = b"",
        unserialized_body: Any = _NO_BODY,
    ):
        self.status_code = status_code
        self.body = body
        self._headers = normalize_headers(headers)
        self._unserialized = unserialized_body

    # ── Accessors ─────────────────────────────────────────────────────

    @property
    def headers(self) -> list[tuple[str, str]]:
        return [(name, value) for name, values in self._headers.items() for value in values]

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def header_line(self, name: str) -> str:
        return ", ".join(self._headers.get(name.lower(), []))

    def content_type(self) -> str:
        return self.header_line("Content-Type")

    @property
    def has_unserialized_body(self) -> bool:
        return self._unserialized is not _NO_BODY

    def unserialized_body(self) -> Any:
        if not self.has_unserialized_body:
            raise BodyUnavailable()
        return self._unserialized

    # ── Copy-on-write mutators ────────────────────────────────────────

    def _copy(self, **changes: Any) -> "Response":
        clone = Response.__new__(Response)
        clone.status_code = changes.get("status_code", self.status_code)
        clone.body = changes.get("body", self.body)
        if "headers" in changes:
            clone._headers = changes["headers"]
        else:
            clone._headers = {k: list(v) for k, v in self._headers.items()}
        clone._unserialized = changes.get("unserialized", self._unserialized)
        return clone

    def with_status(self, status_code: int) -> "Response":
        return self._copy(status_code=status_code)

    def with_header(self, name: str, value: str) -> "Response":
        headers = {k: list(v) for k, v in self._headers.items()}
        headers[name.lower()] = [value]
        return self._copy(headers=headers)

    def with_body(self, body: bytes) -> "Response":
        return self._copy(body=body)

    def with_unserialized_body(self, value: Any) -> "Response":
        return self._copy(unserialized=value)

    def __repr__(self) -> str:
        return f"Response({self.status_code}, {self.content_type() or '-'})"


# ---------------------------------------------------------------------------
# Collaborator contracts — any host objects offering these methods work with
# the serializer stages, not only the classes above.
# ---------------------------------------------------------------------------

class RequestLike(Protocol):
    def has_header(self, name: str) -> bool: ...

    def header_value(self, name: str) -> str: ...


class ResponseLike(Protocol):
    status_code: int

    @property
    def has_unserialized_body(self) -> bool: ...

    def content_type(self) -> str: ...

    def unserialized_body(self) -> Any: ...

    def with_status(self, status_code: int) -> "ResponseLike": ...

    def with_unserialized_body(self, value: Any) -> "ResponseLike": ...

    def with_body(self, body: bytes) -> "ResponseLike": ...


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------

def success_response(data: Any, content_type: str = "application/json") -> Response:
    """A 200 response carrying ``{"success": true, "data": ...}`` unserialized."""
    return Response(
        200,
        {"Content-Type": content_type},
        unserialized_body={"success": True, "data": _serialize(data)},
    )


def error_response(
    status_code: int, message: str, content_type: str = "application/json"
) -> Response:
    """A failed response carrying the error envelope unserialized."""
    return Response(
        status_code,
        {"Content-Type": content_type},
        unserialized_body={
            "success": False,
            "error": {"code": status_code, "message": message},
        },
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _serialize(obj: Any) -> Any:
    """Best-effort conversion to JSON-compatible values."""
    if obj is None or isinstance(obj, (str, int, float, bool, bytes)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): _serialize(v) for k, v in obj.items()}
    # Fallback: try __dict__, then str()
    if hasattr(obj, "__dict__"):
        return _serialize(vars(obj))
    return str(obj)
