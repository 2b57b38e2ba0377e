"""Process-scoped state shared by the modifiers.

Created with the dispatcher, lives for the whole process and is cleared only
through `clear_cache()` / `reset_rate_limits()`. Middleware objects hold
configuration only; everything they mutate lives here.
"""

from __future__ import annotations

from dataclasses import dataclass

from fluxkit.cache import DEFAULT_MAX_ENTRIES, Clock, FifoCache, monotonic_ms


@dataclass(slots=True)
class RateLimitState:
    """Token bucket: fractional token count and last refill time (ms)."""
    tokens: float
    last_refill: float


class ModifierState:
    """Per-tool caches and per-key token buckets, plus the clock they read."""

    __slots__ = ("_caches", "_tools", "_buckets", "_clock")

    def __init__(self, clock: Clock | None = None) -> None:
        self._caches: dict[str, FifoCache] = {}
        self._tools: dict[str, set[str]] = {}
        self._buckets: dict[str, RateLimitState] = {}
        self._clock = clock or monotonic_ms

    def now(self) -> float:
        """Current time in milliseconds."""
        return self._clock()

    def cache_for(self, key: str, max_entries: int = DEFAULT_MAX_ENTRIES, tool: str | None = None) -> FifoCache:
        """Cache for one connector type's method, created on first use.

        `tool` records the qualified name the cache is served under so
        `clear_cache(tool)` can find it.
        """
        cache = self._caches.get(key)
        if cache is None:
            cache = self._caches[key] = FifoCache(max_entries)
        if tool is not None:
            self._tools.setdefault(tool, set()).add(key)
        return cache

    def bucket(self, key: str, capacity: float) -> RateLimitState:
        """Token bucket for `key`, created full on first use."""
        state = self._buckets.get(key)
        if state is None:
            state = self._buckets[key] = RateLimitState(tokens=float(capacity), last_refill=self.now())
        return state

    def clear_cache(self, tool: str | None = None) -> None:
        """Empty the caches served under a qualified tool name (or a state key).

        Clears every cache when `tool` is None.
        """
        if tool is None:
            keys = set(self._caches)
        else:
            keys = self._tools.get(tool, set()) | {tool}
        for key in keys:
            if (cache := self._caches.get(key)) is not None:
                cache.clear()

    def reset_rate_limits(self) -> None:
        self._buckets.clear()

    @property
    def caches(self) -> dict[str, FifoCache]:
        return dict(self._caches)

    @property
    def buckets(self) -> dict[str, RateLimitState]:
        return dict(self._buckets)
