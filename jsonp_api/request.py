"""Incoming request abstraction — multi-valued, case-insensitive headers."""

from __future__ import annotations

from typing import Iterable, Mapping, Union
from urllib.parse import parse_qs

HeaderInput = Union[Mapping[str, str], Iterable[tuple[str, str]], None]


def normalize_headers(headers: HeaderInput) -> dict[str, list[str]]:
    """Fold a mapping or a sequence of pairs into ``{lower-name: [values]}``.

    Repeated names keep every value in arrival order.
    """
    folded: dict[str, list[str]] = {}
    if not headers:
        return folded
    pairs = headers.items() if isinstance(headers, Mapping) else headers
    for name, value in pairs:
        folded.setdefault(name.lower(), []).append(value)
    return folded


class Request:
    """A parsed HTTP request as seen by routes and pipeline stages."""

    __slots__ = ("method", "path", "query_string", "body", "client_ip", "_headers")

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        headers: HeaderInput = None,
        query_string: str = "",
        body: bytes | None = None,
        client_ip: str = "",
    ):
        self.method = method.upper()
        self.path = path
        self.query_string = query_string
        self.body = body
        self.client_ip = client_ip
        self._headers = normalize_headers(headers)

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def header_value(self, name: str) -> str:
        """First occurrence of *name*, verbatim; empty string when absent."""
        values = self._headers.get(name.lower())
        return values[0] if values else ""

    def header_line(self, name: str) -> str:
        return ", ".join(self._headers.get(name.lower(), []))

    @property
    def query(self) -> dict[str, str]:
        if not self.query_string:
            return {}
        qs = parse_qs(self.query_string, keep_blank_values=True)
        return {key: values[0] for key, values in qs.items()}

    def __repr__(self) -> str:
        return f"Request({self.method} {self.path})"
