"""Blocking entry points: build a server, attach a transport, run until closed."""

from __future__ import annotations

import asyncio
import logging

from fluxkit.foundation.registry import ToolRegistry
from fluxkit.observability import configure_logging
from fluxkit.server import FluxServer
from fluxkit.transport import HttpTransport, StdioTransport, Transport, WebSocketTransport

logger = logging.getLogger("fluxkit.server")


def _run(server: FluxServer, transport: Transport) -> None:
    configure_logging()
    server.set_transport(transport)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        logger.info("Interrupted")


def serve_stdio(connector: object, *, registry: ToolRegistry | None = None) -> None:
    """Serve JSON-RPC over stdin/stdout until end of input (MCP-compatible clients)."""
    server = FluxServer(connector, registry=registry)
    _run(server, StdioTransport(server))


def serve_http(
    connector: object,
    *,
    registry: ToolRegistry | None = None,
    host: str | None = None,
    port: int | None = None,
    prefix: str | None = None,
) -> None:
    """Serve the REST and JSON-RPC surfaces over HTTP.

    Endpoints:
        GET  {prefix}/tools        -> List tools with schemas
        POST {prefix}/tools/{name} -> Invoke tool with JSON body
        POST {prefix}/rpc          -> JSON-RPC
    """
    server = FluxServer(connector, registry=registry)
    _run(server, HttpTransport(server, host=host, port=port, prefix=prefix))


def serve_websocket(
    connector: object,
    *,
    registry: ToolRegistry | None = None,
    host: str | None = None,
    port: int | None = None,
    path: str | None = None,
) -> None:
    """Serve the socket transport (list/call/rpc messages plus broadcasts)."""
    server = FluxServer(connector, registry=registry)
    _run(server, WebSocketTransport(server, host=host, port=port, path=path))
