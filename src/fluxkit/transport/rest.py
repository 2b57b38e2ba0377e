"""REST surface shared by the HTTP transport and the platform adapter.

GET  {prefix}/tools                -> {tools: [...]}
POST {prefix}/tools/{name}         -> {result} | {error} with 4xx/5xx
GET  {prefix}/tools/{name}/schema  -> tool definition | 404
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from fluxkit.foundation.errors import (
    FluxError,
    RateLimitExceededError,
    error_message,
    http_status_for,
    retry_after_seconds,
)
from fluxkit.observability import include_traceback

if TYPE_CHECKING:
    from fluxkit.server import FluxServer

logger = logging.getLogger("fluxkit.transport")


class RestResult(NamedTuple):
    status: int
    payload: dict[str, object]
    headers: dict[str, str]


def error_result(exc: BaseException) -> RestResult:
    """Status, `{error}` body and headers for a failure."""
    status = http_status_for(exc)
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError):
        headers["Retry-After"] = str(retry_after_seconds(exc))
    if status >= 500 and not isinstance(exc, FluxError):
        logger.warning(f"Tool call failed: {error_message(exc)}", exc_info=include_traceback(logger))
    return RestResult(status, {"error": error_message(exc)}, headers)


def tools_payload(server: FluxServer) -> RestResult:
    try:
        return RestResult(200, {"tools": server.list_tools()}, {})
    except Exception as e:
        return error_result(e)


def schema_payload(server: FluxServer, name: str) -> RestResult:
    for tool in server.list_tools():
        if tool["name"] == name or str(tool["name"]).split(".", 1)[-1] == name:
            return RestResult(200, tool, {})
    return RestResult(404, {"error": f"Unknown tool: {name}"}, {})


async def call_payload(server: FluxServer, name: str, body: object) -> RestResult:
    """Invoke `name` with a JSON object body of arguments."""
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return RestResult(400, {"error": "Request body must be a JSON object"}, {})
    try:
        result = await server.call_tool(name, body)
    except Exception as e:
        return error_result(e)
    return RestResult(200, {"result": result}, {})
