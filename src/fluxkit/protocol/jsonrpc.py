"""JSON-RPC 2.0 envelope shared by the stdio, HTTP `/rpc` and socket `rpc` surfaces.

Recognized methods:
    initialize  (stdio only) protocol version and capability advertisement
    tools/list  {"tools": [ToolDefinition, ...]}
    tools/call  {"name": ..., "arguments": {...}} -> MCP-style text content

Error mapping:
    -32700  input is not a JSON object (id defaults to 0)
    -32600  object without a string `method`
    -32601  unrecognized method
    -32602  bad `tools/call` params or arguments that do not fit the handler
    -32603  any other failure while dispatching; the failure's message is `data`

Requests without an `id` are notifications: they run, but get no response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fluxkit.foundation.errors import InvalidArgumentsError, error_message
from fluxkit.io import decode, encode_str
from fluxkit.observability import include_traceback

if TYPE_CHECKING:
    from fluxkit.server import FluxServer

logger = logging.getLogger("fluxkit.protocol")

JSONRPC_VERSION: Final = "2.0"

PARSE_ERROR: Final = -32700
INVALID_REQUEST: Final = -32600
METHOD_NOT_FOUND: Final = -32601
INVALID_PARAMS: Final = -32602
INTERNAL_ERROR: Final = -32603

RequestId = int | str | None


class JsonRpcError(BaseModel):
    """Error member of a response."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: object | None = None


class JsonRpcRequest(BaseModel):
    """Inbound request. Extra members (e.g. the socket `type`) are ignored."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    method: str
    params: dict[str, object] = Field(default_factory=dict)


class JsonRpcResponse(BaseModel):
    """Outbound response: exactly one of `result` / `error` goes on the wire."""

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = 0
    result: object | None = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, id: RequestId, result: object) -> JsonRpcResponse:
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: RequestId, code: int, message: str, data: object | None = None) -> JsonRpcResponse:
        return cls(id=id, error=JsonRpcError(code=code, message=message, data=data))

    def to_wire(self) -> dict[str, object]:
        wire: dict[str, object] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            wire["error"] = self.error.model_dump(exclude_none=True)
        else:
            wire["result"] = self.result
        return wire


def _safe_id(message: dict[str, object]) -> RequestId:
    raw = message.get("id", 0)
    return raw if isinstance(raw, (int, str)) and not isinstance(raw, bool) else 0


def parse_error(detail: str) -> dict[str, object]:
    return JsonRpcResponse.failure(0, PARSE_ERROR, "Parse error", detail).to_wire()


def text_content(result: object) -> dict[str, object]:
    """Wrap a tool result as MCP text content."""
    return {"content": [{"type": "text", "text": encode_str(result)}]}


class RpcHandler:
    """Translate JSON-RPC messages into dispatch calls.

    Args:
        server: Server whose tools are exposed
        initialize: Answer `initialize` (the stdio surface does, HTTP and
            socket do not)
        server_info: `serverInfo` member of the initialize result
        protocol_version: `protocolVersion` member of the initialize result
    """

    __slots__ = ("_server", "_initialize", "_server_info", "_protocol_version")

    def __init__(
        self,
        server: FluxServer,
        *,
        initialize: bool = False,
        server_info: dict[str, str] | None = None,
        protocol_version: str = "2024-11-05",
    ) -> None:
        self._server = server
        self._initialize = initialize
        self._server_info = server_info or {"name": "flux-server", "version": "0.1.0"}
        self._protocol_version = protocol_version

    async def handle_raw(self, raw: str | bytes) -> dict[str, object] | None:
        """Handle one serialized message. Never raises."""
        try:
            message = decode(raw)
        except orjson.JSONDecodeError as e:
            return parse_error(str(e))
        return await self.handle(message)

    async def handle(self, message: object) -> dict[str, object] | None:
        """Handle one decoded message. Returns None for notifications."""
        if not isinstance(message, dict):
            return parse_error("Expected a JSON object")
        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError as e:
            return JsonRpcResponse.failure(
                _safe_id(message), INVALID_REQUEST, "Invalid Request", e.errors(include_url=False),
            ).to_wire()

        response = await self.dispatch(request)
        if "id" not in message:
            return None
        return response.to_wire()

    async def dispatch(self, request: JsonRpcRequest) -> JsonRpcResponse:
        rid = request.id
        try:
            match request.method:
                case "initialize" if self._initialize:
                    return JsonRpcResponse.success(rid, {
                        "protocolVersion": self._protocol_version,
                        "capabilities": {"tools": {}},
                        "serverInfo": self._server_info,
                    })
                case "tools/list":
                    return JsonRpcResponse.success(rid, {"tools": self._server.list_tools()})
                case "tools/call":
                    name = request.params.get("name")
                    if not isinstance(name, str):
                        return JsonRpcResponse.failure(rid, INVALID_PARAMS, "Invalid params", "'name' must be a string")
                    arguments = request.params.get("arguments") or {}
                    result = await self._server.call_tool(name, arguments)  # type: ignore[arg-type]
                    return JsonRpcResponse.success(rid, text_content(result))
                case _:
                    return JsonRpcResponse.failure(rid, METHOD_NOT_FOUND, f"Method not found: {request.method}")
        except InvalidArgumentsError as e:
            return JsonRpcResponse.failure(rid, INVALID_PARAMS, "Invalid params", e.message)
        except Exception as e:
            logger.warning(f"{request.method} failed: {error_message(e)}", exc_info=include_traceback(logger))
            return JsonRpcResponse.failure(rid, INTERNAL_ERROR, "Internal error", error_message(e))
