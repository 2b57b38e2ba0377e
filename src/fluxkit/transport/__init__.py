"""Wire transports: stdio (line JSON-RPC), HTTP (REST + RPC), WebSocket."""

from .base import Transport, UvicornRunner
from .http import HttpTransport
from .rest import RestResult, call_payload, error_result, schema_payload, tools_payload
from .stdio import BinaryWriter, LineWriter, StdioTransport
from .websocket import SocketPeer, WebSocketTransport

__all__ = [
    "Transport",
    "UvicornRunner",
    "StdioTransport",
    "LineWriter",
    "BinaryWriter",
    "HttpTransport",
    "WebSocketTransport",
    "SocketPeer",
    "RestResult",
    "call_payload",
    "error_result",
    "schema_payload",
    "tools_payload",
]
