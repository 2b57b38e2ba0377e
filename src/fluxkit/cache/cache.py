"""Tool result caching with TTL support.

In-memory FIFO caches that keep identical calls from re-running a handler.
One `FifoCache` exists per tool; entries expire after their TTL and the
oldest-inserted entry is evicted once a cache grows past `max_entries`.

Eviction is by insertion order, not access order: reading an entry never
protects it from eviction.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

import orjson
from pydantic import BaseModel

Clock = Callable[[], float]
"""Returns the current time in milliseconds."""

DEFAULT_TTL_MS: Final = 60_000
DEFAULT_MAX_ENTRIES: Final = 100


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(slots=True)
class CacheEntry:
    """A cached tool result with expiration tracking (milliseconds)."""
    value: object
    expires_at: float

    def live(self, now: float) -> bool:
        return now < self.expires_at


def _default(obj: object) -> object:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    return repr(obj)


def make_key(args: tuple[object, ...], kwargs: dict[str, object] | None = None) -> str:
    """Deterministic key from a call's argument list."""
    payload: list[object] = list(args)
    if kwargs:
        payload.append(kwargs)
    return orjson.dumps(payload, default=_default, option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS).decode()


class FifoCache:
    """Insertion-ordered cache with TTL-based expiration.

    Not locked: fluxkit runs on one event loop and no method here awaits,
    so a mutation cannot be interleaved with another.

    Example:
        >>> cache = FifoCache(max_entries=2)
        >>> cache.put("a", 1, expires_at=1_000)
        >>> cache.get("a", now=500)
        CacheEntry(value=1, expires_at=1000)
        >>> cache.get("a", now=1_000) is None
        True
    """

    __slots__ = ("_entries", "_max_entries")

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._entries: dict[str, CacheEntry] = {}
        self._max_entries = max_entries

    def get(self, key: str, now: float) -> CacheEntry | None:
        """Live entry for `key`, or None. Expired entries are dropped on lookup."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.live(now):
            del self._entries[key]
            return None
        return entry

    def put(self, key: str, value: object, expires_at: float) -> None:
        """Store `value`, then evict the oldest-inserted entry if over capacity.

        Overwriting a key re-inserts it as the newest entry.
        """
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
        if len(self._entries) > self._max_entries:
            del self._entries[next(iter(self._entries))]

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        """Keys in insertion order (oldest first)."""
        return list(self._entries)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def size(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def stats(self, now: float | None = None) -> dict[str, object]:
        """Cache statistics for monitoring."""
        now = monotonic_ms() if now is None else now
        expired = sum(1 for e in self._entries.values() if not e.live(now))
        return {
            "total_entries": len(self._entries),
            "expired_entries": expired,
            "active_entries": len(self._entries) - expired,
            "max_entries": self._max_entries,
        }
