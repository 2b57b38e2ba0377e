"""Fluxkit - Expose plain Python classes as remotely callable tools.

Register a connector class and its methods once, then serve the same tools
over stdio (JSON-RPC lines), HTTP (REST + JSON-RPC) or WebSocket. Calls can
be wrapped in caching, rate limiting and retry modifiers.

Quick Start:
    >>> from fluxkit import CacheMiddleware, FluxServer, get_registry, serve_stdio
    >>>
    >>> class Weather:
    ...     async def get_weather(self, city: str) -> dict:
    ...         return {"city": city, "temp": 21}
    >>>
    >>> get_registry().register(Weather, "weather", description="Weather lookups").method(
    ...     "get_weather", name="getWeather", middleware=[CacheMiddleware(ttl_ms=60_000)],
    ... )
    >>> serve_stdio(Weather)  # tools/list -> weather.getWeather

In-Process:
    >>> server = FluxServer(Weather)
    >>> await server.call_tool("weather.getWeather", {"city": "Tokyo"})
    {'city': 'Tokyo', 'temp': 21}
"""

from __future__ import annotations

__version__ = "0.1.0"

# Configuration
from .foundation.config import FluxSettings, clear_settings_cache, get_settings

# Errors
from .foundation.errors import (
    DuplicateConnectorError,
    ErrorCode,
    FluxError,
    InvalidArgumentsError,
    MissingConnectorMetadataError,
    RateLimitExceededError,
    UnknownToolError,
)

# Registry
from .foundation.registry import (
    ConnectorDescriptor,
    MethodDescriptor,
    ToolDefinition,
    ToolRegistry,
    get_registry,
    reset_registry,
)

# Modifiers
from .runtime.middleware import (
    CacheMiddleware,
    LoggingMiddleware,
    Middleware,
    ModifierState,
    RateLimitMiddleware,
    RetryMiddleware,
    compose,
)

# Server and transports
from .server import Dispatcher, FluxServer
from .transport import HttpTransport, StdioTransport, Transport, WebSocketTransport
from .adapters import handle_request
from .serve import serve_http, serve_stdio, serve_websocket

# Logging
from .observability import configure_logging

__all__ = [
    "__version__",
    # Configuration
    "FluxSettings",
    "get_settings",
    "clear_settings_cache",
    # Errors
    "ErrorCode",
    "FluxError",
    "UnknownToolError",
    "MissingConnectorMetadataError",
    "DuplicateConnectorError",
    "InvalidArgumentsError",
    "RateLimitExceededError",
    # Registry
    "ConnectorDescriptor",
    "MethodDescriptor",
    "ToolDefinition",
    "ToolRegistry",
    "get_registry",
    "reset_registry",
    # Modifiers
    "Middleware",
    "compose",
    "ModifierState",
    "CacheMiddleware",
    "RateLimitMiddleware",
    "RetryMiddleware",
    "LoggingMiddleware",
    # Server and transports
    "Dispatcher",
    "FluxServer",
    "Transport",
    "StdioTransport",
    "HttpTransport",
    "WebSocketTransport",
    "handle_request",
    "serve_stdio",
    "serve_http",
    "serve_websocket",
    # Logging
    "configure_logging",
]
