"""Custom exceptions raised by the host and the serializer stages."""

from __future__ import annotations


class APIError(Exception):
    """Base exception for all jsonp_api errors."""

    def __init__(self, status_code: int = 500, message: str = "Internal Server Error"):
        self.status_code = status_code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": {
                "code": self.status_code,
                "message": self.message,
            },
        }


class NotFound(APIError):
    """404 — route does not exist."""

    def __init__(self, message: str = "Not Found"):
        super().__init__(404, message)


class MethodNotAllowed(APIError):
    """405 — HTTP method not supported for this route."""

    def __init__(self, allowed: list[str] | None = None):
        self.allowed = allowed or []
        msg = "Method Not Allowed"
        if self.allowed:
            msg += f". Allowed: {', '.join(self.allowed)}"
        super().__init__(405, msg)


class BodyUnavailable(APIError):
    """500 — the response kept no structured body to re-encode."""

    def __init__(self, message: str = "Serializer could not retrieve unserialized body"):
        super().__init__(500, message)


class SerializationFailed(APIError):
    """500 — the structured body cannot be encoded as JSON."""

    def __init__(self, message: str = "Could not serialize content to JSON"):
        super().__init__(500, message)
