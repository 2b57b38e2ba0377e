"""Standardized failures for tool registration and dispatch.

Every failure raised by the registry, the modifiers or the dispatch core
derives from FluxError and carries an ErrorCode. Transports translate these
into their own wire shapes (JSON-RPC error object, HTTP status + body,
socket error frame); nothing here knows about wire formats beyond the
HTTP status mapping used by the REST surface.
"""

from __future__ import annotations

import math
from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable failure classification."""
    NOT_FOUND = "NOT_FOUND"
    METADATA_MISSING = "METADATA_MISSING"
    DUPLICATE = "DUPLICATE"
    INVALID_PARAMS = "INVALID_PARAMS"
    RATE_LIMITED = "RATE_LIMITED"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL = "INTERNAL"


class FluxError(Exception):
    """Base class for framework failures."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code.value, "message": self.message}


class UnknownToolError(FluxError):
    """Qualified tool name did not resolve to a registered method."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class MissingConnectorMetadataError(FluxError):
    """Connector instance's type was never registered."""

    code = ErrorCode.METADATA_MISSING

    def __init__(self, connector_type: type) -> None:
        self.connector_type = connector_type
        super().__init__(
            f"{connector_type.__qualname__} is not a registered connector. "
            "Call registry.register() first."
        )


class DuplicateConnectorError(FluxError):
    """Connector type or method registered twice with conflicting metadata."""

    code = ErrorCode.DUPLICATE


class InvalidArgumentsError(FluxError):
    """Call arguments could not be bound to the method signature."""

    code = ErrorCode.INVALID_PARAMS

    def __init__(self, tool_name: str, reason: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Invalid arguments for {tool_name}: {reason}")


class RateLimitExceededError(FluxError):
    """Token bucket empty. `retry_after_ms` says when one token is back."""

    code = ErrorCode.RATE_LIMITED

    def __init__(self, retry_after_ms: int) -> None:
        self.retry_after_ms = retry_after_ms
        super().__init__(f"Rate limit exceeded. Retry after {retry_after_ms}ms")

    def to_dict(self) -> dict[str, object]:
        return {**super().to_dict(), "retryAfterMs": self.retry_after_ms}


_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_PARAMS: 400,
    ErrorCode.PARSE_ERROR: 400,
    ErrorCode.RATE_LIMITED: 429,
}


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map any exception to an error code. Non-framework failures are INTERNAL."""
    return exc.code if isinstance(exc, FluxError) else ErrorCode.INTERNAL


def http_status_for(exc: BaseException) -> int:
    """HTTP status for a failure surfaced through the REST endpoints."""
    return _HTTP_STATUS.get(classify_exception(exc), 500)


def retry_after_seconds(exc: RateLimitExceededError) -> int:
    """Value for a `Retry-After` header (whole seconds, at least 1)."""
    return max(1, math.ceil(exc.retry_after_ms / 1000))


def error_message(exc: BaseException) -> str:
    """Human-readable message, never empty."""
    return str(exc) or type(exc).__name__
