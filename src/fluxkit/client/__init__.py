"""Caller-side clients for the HTTP and WebSocket transports."""

from .errors import RemoteToolError, RpcError
from .http import HttpClient
from .websocket import ConnectionState, PendingCall, SocketClient

__all__ = ["ConnectionState", "HttpClient", "PendingCall", "RemoteToolError", "RpcError", "SocketClient"]
