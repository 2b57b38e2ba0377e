"""Result caching middleware."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from fluxkit.cache import make_key
from fluxkit.foundation.config import get_settings

from ..middleware import Call, Next


@dataclass(slots=True)
class CacheMiddleware:
    """Return a stored result for identical calls within `ttl_ms`.

    On a miss the handler runs, its result is stored with
    `expires_at = now + ttl_ms`, and the oldest-inserted entry is evicted if
    the tool's cache now holds more than `max_entries`. Failures are never
    cached. Two concurrent misses on one key both run the handler; the last
    result stored wins.

    Args:
        ttl_ms: Entry lifetime in milliseconds (default FLUX_CACHE_TTL_MS, 60000)
        max_entries: Entries per tool (default FLUX_CACHE_MAX_ENTRIES, 100)
        key: Custom key function, called with the call's arguments

    Example:
        >>> registry.register(Api, "api").method(
        ...     "get_user", middleware=[CacheMiddleware(ttl_ms=30_000, max_entries=50)],
        ... )
    """

    ttl_ms: float | None = None
    max_entries: int | None = None
    key: Callable[..., str] | None = None

    def __post_init__(self) -> None:
        defaults = get_settings().cache
        if self.ttl_ms is None:
            self.ttl_ms = defaults.ttl_ms
        if self.max_entries is None:
            self.max_entries = defaults.max_entries
        if self.ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        if self.max_entries < 1:
            raise ValueError("max_entries must be >= 1")

    def make_key(self, call: Call) -> str:
        if self.key is not None:
            return str(self.key(*call.args, **call.kwargs))
        return make_key(call.args, call.kwargs)

    async def __call__(self, call: Call, next: Next) -> object:
        cache = call.state.cache_for(call.key, self.max_entries, call.tool)  # type: ignore[arg-type]
        key = self.make_key(call)

        if (entry := cache.get(key, call.state.now())) is not None:
            call.context["cache_hit"] = True
            return entry.value

        call.context["cache_hit"] = False
        result = await next(call)
        cache.put(key, result, call.state.now() + self.ttl_ms)  # type: ignore[operator]
        return result
