"""Error taxonomy for fluxkit.

- ErrorCode: failure classification
- FluxError and subclasses: raised by registry, modifiers and dispatch
- http_status_for / retry_after_seconds: REST mapping helpers
"""

from .errors import (
    DuplicateConnectorError,
    ErrorCode,
    FluxError,
    InvalidArgumentsError,
    MissingConnectorMetadataError,
    RateLimitExceededError,
    UnknownToolError,
    classify_exception,
    error_message,
    http_status_for,
    retry_after_seconds,
)

__all__ = [
    "ErrorCode",
    "FluxError",
    "UnknownToolError",
    "MissingConnectorMetadataError",
    "DuplicateConnectorError",
    "InvalidArgumentsError",
    "RateLimitExceededError",
    "classify_exception",
    "error_message",
    "http_status_for",
    "retry_after_seconds",
]
