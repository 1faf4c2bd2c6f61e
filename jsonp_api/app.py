"""JsonpAPI — lightweight app serving functions as JSON / JSONP endpoints.

Uses only the Python standard library (http.server + json). Every response
passes through a pipeline of stages; the default pipeline holds a plain JSON
serializer and a JSONP serializer, each acting only on its own content types.
"""

from __future__ import annotations

import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable
from urllib.parse import unquote, urlparse

from jsonp_api.decorators import Route
from jsonp_api.errors import APIError, NotFound
from jsonp_api.jsonp import JsonpSerializer
from jsonp_api.pipeline import Pipeline
from jsonp_api.request import Request
from jsonp_api.response import Response, error_response, success_response
from jsonp_api.serializer import JsonSerializer, Serializer, encode_json

logger = logging.getLogger(__name__)


class JsonpAPI:
    """Collect decorated endpoints and serve them over HTTP.

    Usage::

        app = JsonpAPI(title="My Service")

        @app.api("/user", media_type="application/javascript")
        def user(request):
            return {"name": request.query.get("name", "anonymous")}

        app.run()                       # default 127.0.0.1:8000

    ``curl -H "X-Callback: show" http://127.0.0.1:8000/user`` then answers
    ``show({"success":true,"data":{"name":"anonymous"}})``.
    """

    def __init__(
        self,
        title: str = "JsonpAPI",
        version: str = "1.0.0",
        callback_header: str = "X-Callback",
    ):
        self.title = title
        self.version = version
        self._routes: dict[str, Route] = {}
        self.accept_types: list[str] = []
        self.pipeline = Pipeline()
        self.use(JsonSerializer())
        self.use(JsonpSerializer(callback_header=callback_header))

    # ── Decorator ─────────────────────────────────────────────────────

    def api(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        media_type: str = "application/json",
    ) -> Callable:
        """Register a function as an HTTP endpoint.

        Parameters
        ----------
        path : str
            URL path, e.g. ``"/add"``.
        methods : list[str], optional
            Allowed HTTP methods (default ``["GET"]``).
        media_type : str, optional
            Content-Type of the response; ``"application/javascript"`` or
            ``"text/javascript"`` selects JSONP output.
        """
        if methods is None:
            methods = ["GET"]

        def decorator(func: Callable) -> Callable:
            self._routes[path] = Route(path=path, func=func, methods=methods, media_type=media_type)
            return func  # return original function untouched

        return decorator

    def use(self, stage) -> "JsonpAPI":
        """Append a pipeline stage; serializers also register their mime types."""
        if isinstance(stage, Serializer):
            stage.register_mime_types(self.accept_types)
        self.pipeline.add(stage)
        return self

    # ── Built-in info endpoint ────────────────────────────────────────

    def _info(self) -> dict:
        return {
            "title": self.title,
            "version": self.version,
            "accept_types": list(self.accept_types),
            "endpoints": [
                {"path": r.path, "methods": r.methods, "media_type": r.media_type}
                for r in self._routes.values()
            ],
        }

    # ── Request handling ──────────────────────────────────────────────

    def handle(self, request: Request) -> Response:
        """Route *request*, run the pipeline and return a serialized response."""
        route = self._routes.get(request.path)
        media_type = route.media_type if route is not None else "application/json"

        def endpoint(req: Request, _response: Response) -> Response:
            try:
                if req.path == "/info":
                    return success_response(self._info())
                if route is None:
                    raise NotFound(f"No endpoint registered at '{req.path}'")
                return route.handle(req)
            except APIError as exc:
                response = error_response(exc.status_code, exc.message, media_type)
                if getattr(exc, "allowed", None):
                    response = response.with_header("Allow", ", ".join(exc.allowed))
                return response
            except Exception:
                logger.exception("Unhandled error in %s %s", req.method, req.path)
                return error_response(500, "Internal Server Error", media_type)

        try:
            response = self.pipeline.run(request, Response(), endpoint)
        except APIError as exc:
            logger.warning("%s %s failed in pipeline: %s", request.method, request.path, exc.message)
            response = error_response(exc.status_code, exc.message)
        except Exception:
            logger.exception("Unhandled error while serving %s %s", request.method, request.path)
            response = error_response(500, "Internal Server Error")
        return self._finalize(response)

    @staticmethod
    def _finalize(response: Response) -> Response:
        """Encode any structured body no serializer stage picked up."""
        if response.body or not response.has_unserialized_body:
            return response
        try:
            payload = encode_json(response.unserialized_body())
        except APIError as exc:
            logger.warning("Could not encode response body: %s", exc.message)
            response = error_response(exc.status_code, exc.message)
            payload = encode_json(response.unserialized_body())
        if not response.has_header("Content-Type"):
            response = response.with_header("Content-Type", "application/json")
        return response.with_body(payload.encode("utf-8"))

    # ── Server ────────────────────────────────────────────────────────

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Start the HTTP server (blocking)."""
        app = self  # capture for inner class

        class Handler(BaseHTTPRequestHandler):
            """Thin HTTP handler that converts to and from Request/Response."""

            def _dispatch(self):
                parsed = urlparse(self.path)
                content_length = int(self.headers.get("Content-Length", 0))
                request = Request(
                    method=self.command,
                    path=unquote(parsed.path).rstrip("/") or "/",
                    headers=list(self.headers.items()),
                    query_string=parsed.query,
                    body=self.rfile.read(content_length) if content_length else None,
                    client_ip=self.client_address[0],
                )
                self._send(app.handle(request))

            # --- HTTP verbs all go through _dispatch ---
            def do_GET(self):       self._dispatch()
            def do_POST(self):      self._dispatch()
            def do_PUT(self):       self._dispatch()
            def do_PATCH(self):     self._dispatch()
            def do_DELETE(self):    self._dispatch()
            def do_OPTIONS(self):   self._dispatch()

            def _send(self, response: Response):
                self.send_response(response.status_code)
                for name, value in response.headers:
                    if name != "content-length":
                        self.send_header(name, value)
                self.send_header("Content-Length", str(len(response.body)))
                self.end_headers()
                self.wfile.write(response.body)

            def log_message(self, format, *args):
                # Compact one-line logging
                print(f"[{self.log_date_time_string()}] {args[0]}")

        server = ThreadingHTTPServer((host, port), Handler)
        print(f"\n  🚀  {app.title} v{app.version}")
        print(f"  ➜  http://{host}:{port}")
        print(f"  ➜  {len(app._routes)} endpoint(s) registered")
        print(f"  ➜  /info for auto-generated endpoint list\n")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            print("\n  ⏹  Server stopped.")
            server.server_close()
