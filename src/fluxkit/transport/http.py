"""HTTP transport: REST and JSON-RPC surfaces on one Starlette app.

Endpoints (prefix defaults to /api):
    GET  {prefix}/tools               -> {tools: [...]}
    POST {prefix}/tools/{name}        -> {result} | {error}
    GET  {prefix}/tools/{name}/schema -> tool definition
    POST {prefix}/rpc                 -> JSON-RPC response (204 for notifications)
    GET  /health                      -> {status: "ok"}

Responses are JSON unless the caller's Accept header prefers MessagePack.
Request bodies may be JSON or MessagePack (by Content-Type).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from fluxkit.foundation.config import get_settings
from fluxkit.io import codec_for_content_type, negotiate
from fluxkit.protocol import RpcHandler, parse_error

from .base import Transport, UvicornRunner
from .rest import call_payload, schema_payload, tools_payload

if TYPE_CHECKING:
    from fluxkit.server import FluxServer

logger = logging.getLogger("fluxkit.transport")


class BodyError(ValueError):
    """Request body could not be decoded."""


def respond(request: Request, payload: object, status: int = 200, headers: dict[str, str] | None = None) -> Response:
    """Encode `payload` with the codec the caller's Accept header prefers."""
    codec = negotiate(request.headers.get("accept"))
    return Response(codec.encode(payload), status_code=status, headers=headers, media_type=codec.content_type)


async def read_body(request: Request) -> object:
    """Decoded request body; an empty body reads as {}."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return codec_for_content_type(request.headers.get("content-type")).decode(raw)
    except Exception as e:
        raise BodyError(str(e)) from e


class HttpTransport(Transport):
    """Serve tools over HTTP with uvicorn.

    Args:
        server: Server whose tools are exposed
        host: Bind address (default from settings)
        port: Bind port (default from settings)
        prefix: Path prefix for the tool routes (default from settings)
        cors: Allow any origin (default from settings)

    Example:
        >>> transport = HttpTransport(server, port=8000)
        >>> client = TestClient(transport.app)  # embed or test without binding
    """

    __slots__ = ("_host", "_port", "_prefix", "_rpc", "_app", "_runner")

    def __init__(
        self,
        server: FluxServer,
        *,
        host: str | None = None,
        port: int | None = None,
        prefix: str | None = None,
        cors: bool | None = None,
    ) -> None:
        super().__init__(server)
        cfg = get_settings().http
        self._host = host or cfg.host
        self._port = port if port is not None else cfg.port
        self._prefix = ("/" + (prefix if prefix is not None else cfg.prefix).strip("/")).rstrip("/")
        self._rpc = RpcHandler(server)
        self._app = self._create_app(cfg.cors if cors is None else cors)
        self._runner: UvicornRunner | None = None

    @property
    def app(self) -> Starlette:
        """ASGI app for embedding in larger applications."""
        return self._app

    @property
    def prefix(self) -> str:
        return self._prefix

    def _create_app(self, cors: bool) -> Starlette:
        server = self._server

        async def list_tools(request: Request) -> Response:
            status, payload, headers = tools_payload(server)
            return respond(request, payload, status, headers)

        async def invoke_tool(request: Request) -> Response:
            try:
                body = await read_body(request)
            except BodyError as e:
                return respond(request, {"error": f"Invalid request body: {e}"}, 400)
            status, payload, headers = await call_payload(server, request.path_params["name"], body)
            return respond(request, payload, status, headers)

        async def get_tool_schema(request: Request) -> Response:
            status, payload, headers = schema_payload(server, request.path_params["name"])
            return respond(request, payload, status, headers)

        async def rpc(request: Request) -> Response:
            try:
                message = await read_body(request)
            except BodyError as e:
                return respond(request, parse_error(str(e)))
            response = await self._rpc.handle(message)
            if response is None:
                return Response(status_code=204)
            return respond(request, response)

        async def health(request: Request) -> Response:
            return respond(request, {"status": "ok"})

        routes = [
            Route(f"{self._prefix}/tools", list_tools, methods=["GET"]),
            Route(f"{self._prefix}/tools/{{name}}", invoke_tool, methods=["POST"]),
            Route(f"{self._prefix}/tools/{{name}}/schema", get_tool_schema, methods=["GET"]),
            Route(f"{self._prefix}/rpc", rpc, methods=["POST"]),
            Route("/health", health, methods=["GET"]),
        ]
        middleware = [
            Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["*"]),
        ] if cors else []
        return Starlette(routes=routes, middleware=middleware)

    async def start(self) -> None:
        self._runner = UvicornRunner(self._app, self._host, self._port)
        await self._runner.start()

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.stop()
        self._mark_closed()

    async def wait_closed(self) -> None:
        if self._runner is not None:
            await self._runner.wait()
            self._mark_closed()
        await super().wait_closed()
