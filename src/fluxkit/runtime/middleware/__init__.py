"""Middleware system for tool execution.

Provides composable call modifiers for cross-cutting concerns: result
caching, rate limiting, retries and logging. Modifiers are attached per
method at registration time and nest in the order given.

Example:
    >>> from fluxkit.runtime.middleware import (
    ...     CacheMiddleware, RateLimitMiddleware, RetryMiddleware,
    ... )
    >>> # Order matters: cache -> rate limit -> retry -> handler.
    >>> # A cache hit skips the limiter; a rejected call is never retried.
    >>> registry.register(Api, "api").method("premium", middleware=[
    ...     CacheMiddleware(ttl_ms=60_000),
    ...     RateLimitMiddleware(requests=10, window="1m"),
    ...     RetryMiddleware(attempts=2),
    ... ])
"""

from .middleware import Call, Middleware, Next, compose, invoke_handler
from .plugins import (
    CacheMiddleware,
    LoggingMiddleware,
    RateLimitMiddleware,
    RetryMiddleware,
    parse_window,
)
from .state import ModifierState, RateLimitState

__all__ = [
    # Core
    "Call",
    "Middleware",
    "Next",
    "compose",
    "invoke_handler",
    # State
    "ModifierState",
    "RateLimitState",
    # Plugins
    "CacheMiddleware",
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "RetryMiddleware",
    "parse_window",
]
