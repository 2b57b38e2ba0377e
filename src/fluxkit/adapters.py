"""Platform adapter: run the REST surface from any HTTP-like request triple.

For serverless handlers and frameworks that hand over (method, path, body)
rather than an ASGI scope. The caller converts the returned
(status, payload, headers) into its platform's response object.

Example:
    >>> status, payload, headers = await handle_request(server, "POST", "/api/tools/weather.getWeather", {"city": "Tokyo"})
    >>> status, payload["result"]
    (200, {...})
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fluxkit.transport.rest import RestResult, call_payload, schema_payload, tools_payload

if TYPE_CHECKING:
    from fluxkit.server import FluxServer

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _route(path: str, prefix: str) -> list[str] | None:
    """Path segments below `prefix`, or None when the path is outside it."""
    path = "/" + path.partition("?")[0].strip("/")
    prefix = "/" + prefix.strip("/")
    if prefix != "/":
        if path != prefix and not path.startswith(prefix + "/"):
            return None
        path = path[len(prefix):]
    return [part for part in path.split("/") if part]


async def handle_request(
    server: FluxServer,
    method: str,
    path: str,
    body: object = None,
    prefix: str = "/api",
) -> RestResult:
    """Dispatch one request and return (status, payload, headers).

    Routes:
        OPTIONS *                       -> 204 (CORS preflight)
        GET  {prefix}/tools             -> tool list
        POST {prefix}/tools/{name}      -> tool result
        GET  {prefix}/tools/{name}/schema
    Anything else is a 404.
    """
    method = method.upper()
    if method == "OPTIONS":
        return RestResult(204, {}, dict(CORS_HEADERS))

    parts = _route(path, prefix)
    match (method, parts):
        case ("GET", ["tools"]):
            result = tools_payload(server)
        case ("POST", ["tools", name]):
            result = await call_payload(server, name, body)
        case ("GET", ["tools", name, "schema"]):
            result = schema_payload(server, name)
        case _:
            result = RestResult(404, {"error": "Not found"}, {})
    return RestResult(result.status, result.payload, {**CORS_HEADERS, **result.headers})
