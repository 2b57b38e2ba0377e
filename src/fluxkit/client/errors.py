"""Failures raised by the caller-side clients."""

from __future__ import annotations


class RemoteToolError(Exception):
    """The server answered a tool call with an error.

    Attributes:
        status: HTTP status when the error came over REST, else None
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class RpcError(RemoteToolError):
    """JSON-RPC error object returned by the server."""

    def __init__(self, code: int, message: str, data: object = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}" + (f": {self.data}" if self.data is not None else "")
