"""In-memory FIFO result caches."""

from .cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_MS, CacheEntry, Clock, FifoCache, make_key, monotonic_ms

__all__ = [
    "CacheEntry",
    "Clock",
    "DEFAULT_MAX_ENTRIES",
    "DEFAULT_TTL_MS",
    "FifoCache",
    "make_key",
    "monotonic_ms",
]
