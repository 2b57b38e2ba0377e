"""Rate limiting middleware for tool execution."""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from fluxkit.foundation.config import get_settings
from fluxkit.foundation.errors import RateLimitExceededError

from ..middleware import Call, Next

DEFAULT_WINDOW_MS = 60_000

_WINDOW = re.compile(r"^(\d+)(ms|s|m|h)?$")
_UNIT_MS = {"ms": 1, "s": 1000, "m": 60_000, "h": 3_600_000}


def parse_window(window: int | float | str) -> float:
    """Window in milliseconds. Accepts a number (ms) or "500ms"/"30s"/"1m"/"2h".

    A bare digit string is milliseconds; anything unparseable is one minute.
    """
    if isinstance(window, (int, float)):
        return float(window)
    match = _WINDOW.match(window.strip())
    if match is None:
        return float(DEFAULT_WINDOW_MS)
    return float(int(match.group(1)) * _UNIT_MS[match.group(2) or "ms"])


@dataclass(slots=True)
class RateLimitMiddleware:
    """Continuous token bucket rate limiter.

    Each bucket holds up to `requests` fractional tokens and refills at
    `requests / window` tokens per millisecond. A call spends one token;
    with less than one token left the call is rejected with
    RateLimitExceededError before reaching the rest of the chain. Bursts up
    to the bucket capacity pass, then calls are throttled proportionally.

    Args:
        requests: Bucket capacity (quota per window)
        window: Refill window, milliseconds or a short-unit string ("30s", "1m")
        key: "method" (per connector type and method, default), "global"
            (one bucket for every limiter keyed globally) or a function of
            the call's arguments

    Example:
        >>> registry.register(Api, "api").method(
        ...     "search", middleware=[RateLimitMiddleware(requests=5, window="1m")],
        ... )
    """

    requests: int | None = None
    window: int | float | str | None = None
    key: Literal["global", "method"] | Callable[..., str] | None = None
    window_ms: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        defaults = get_settings().rate_limit
        if self.requests is None:
            self.requests = defaults.requests
        if self.window is None:
            self.window = defaults.window
        if self.key is None:
            self.key = defaults.key
        if self.requests < 1:
            raise ValueError("requests must be >= 1")
        self.window_ms = parse_window(self.window)
        if self.window_ms <= 0:
            raise ValueError("window must be positive")

    @property
    def refill_rate(self) -> float:
        """Tokens per millisecond."""
        return self.requests / self.window_ms  # type: ignore[operator]

    def bucket_key(self, call: Call) -> str:
        if self.key == "global":
            return "global"
        if self.key == "method" or self.key is None:
            return call.key
        return str(self.key(*call.args, **call.kwargs))  # type: ignore[operator]

    def acquire(self, call: Call) -> None:
        """Refill, then spend one token or raise RateLimitExceededError."""
        capacity = float(self.requests)  # type: ignore[arg-type]
        state = call.state.bucket(self.bucket_key(call), capacity)
        now = call.state.now()
        elapsed = max(0.0, now - state.last_refill)
        rate = self.refill_rate

        state.tokens = min(capacity, state.tokens + elapsed * rate)
        state.last_refill = now

        if state.tokens < 1:
            raise RateLimitExceededError(math.ceil((1 - state.tokens) / rate))
        state.tokens -= 1

    async def __call__(self, call: Call, next: Next) -> object:
        self.acquire(call)
        return await next(call)
