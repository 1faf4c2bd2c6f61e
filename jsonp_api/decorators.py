"""Route — metadata + handler for a registered endpoint."""

from __future__ import annotations

import asyncio
import inspect
from typing import Callable

from jsonp_api.errors import MethodNotAllowed
from jsonp_api.request import Request
from jsonp_api.response import Response, success_response


class Route:
    """A single endpoint. Handlers take the Request and return plain data."""

    __slots__ = ("path", "methods", "func", "media_type")

    def __init__(
        self,
        path: str,
        func: Callable,
        methods: list[str],
        media_type: str = "application/json",
    ):
        self.path = path
        self.func = func
        self.methods = [m.upper() for m in methods]
        self.media_type = media_type

    def handle(self, request: Request) -> Response:
        """Run the handler and wrap its result, still unserialized."""
        if request.method not in self.methods:
            raise MethodNotAllowed(self.methods)

        result = self.func(request)

        # Handle async / coroutine results
        if inspect.iscoroutine(result):
            result = asyncio.run(result)

        if isinstance(result, Response):
            return result
        return success_response(result, self.media_type)
