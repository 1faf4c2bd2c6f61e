"""Synchronous response-processing pipeline."""

from __future__ import annotations

from typing import Iterable

from jsonp_api.response import RequestLike, ResponseLike
from jsonp_api.serializer import Next


class Pipeline:
    """Ordered stages, each ``process(request, response, next) -> response``.

    The first stage is outermost: it sees the request first and the
    response last.
    """

    def __init__(self, stages: Iterable = ()):
        self.stages = list(stages)

    def add(self, stage) -> "Pipeline":
        self.stages.append(stage)
        return self

    def run(self, request: RequestLike, response: ResponseLike, handler: Next) -> ResponseLike:
        return self._next_at(0, handler)(request, response)

    def _next_at(self, index: int, handler: Next) -> Next:
        if index >= len(self.stages):
            return handler
        stage = self.stages[index]
        rest = self._next_at(index + 1, handler)

        def call(request: RequestLike, response: ResponseLike) -> ResponseLike:
            return stage.process(request, response, rest)

        return call
