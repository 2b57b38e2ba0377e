"""Built-in middleware plugins: cache, rate limit, retry, logging."""

from .cache import CacheMiddleware
from .logging import LoggingMiddleware
from .rate_limit import RateLimitMiddleware, parse_window
from .retry import RetryMiddleware

__all__ = [
    "CacheMiddleware",
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "RetryMiddleware",
    "parse_window",
]
