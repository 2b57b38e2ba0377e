"""Retry middleware for tool execution.

Re-invokes the rest of the chain on failure with configurable backoff.
The wait between attempts is an `asyncio.sleep`, so other calls keep
running while one call backs off.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from fluxkit.foundation.config import get_settings
from fluxkit.runtime.retry import Backoff, BackoffKind, make_backoff

from ..middleware import Call, Next

logger = logging.getLogger("fluxkit.middleware")


def _always(exc: Exception) -> bool:
    return True


@dataclass(slots=True)
class RetryMiddleware:
    """Retry failed executions with fixed, linear or exponential backoff.

    The chain below is invoked at most `attempts` times. A failure on the
    last attempt, or one the `retry_on` predicate rejects, propagates
    unchanged.

    Args:
        attempts: Total attempts including the first (default 3)
        backoff: "fixed", "linear", "exponential" (default) or a Backoff instance
        delay_ms: Base delay in milliseconds (default 1000)
        max_delay_ms: Delay cap in milliseconds (default 30000)
        retry_on: Predicate deciding whether an exception is retryable
        sleep: Awaitable sleep taking seconds (swap out in tests)

    Example:
        >>> RetryMiddleware(attempts=5, backoff="linear", delay_ms=200)
    """

    attempts: int | None = None
    backoff: BackoffKind | Backoff | None = None
    delay_ms: float | None = None
    max_delay_ms: float | None = None
    retry_on: Callable[[Exception], bool] = _always
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep
    strategy: Backoff = field(init=False, repr=False)

    def __post_init__(self) -> None:
        defaults = get_settings().retry
        if self.attempts is None:
            self.attempts = defaults.attempts
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay_ms is None:
            self.delay_ms = defaults.delay_ms
        if self.max_delay_ms is None:
            self.max_delay_ms = defaults.max_delay_ms
        backoff = self.backoff if self.backoff is not None else defaults.backoff
        self.strategy = (
            make_backoff(backoff, self.delay_ms, self.max_delay_ms)
            if isinstance(backoff, str) else backoff
        )

    async def __call__(self, call: Call, next: Next) -> object:
        attempts: int = self.attempts  # type: ignore[assignment]
        for attempt in range(1, attempts + 1):
            try:
                result = await next(call)
            except Exception as e:
                call.context["retry_attempts"] = attempt
                if attempt >= attempts or not self.retry_on(e):
                    raise
                delay = self.strategy.delay(attempt)
                logger.warning(
                    f"[{call.tool}] Attempt {attempt}/{attempts} failed: {e}. "
                    f"Retrying in {delay:.0f}ms"
                )
                await self.sleep(delay / 1000)
            else:
                call.context["retry_attempts"] = attempt
                return result
        raise AssertionError("unreachable")  # pragma: no cover
