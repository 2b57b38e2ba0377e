"""Backoff strategies for the retry modifier.

Provides pluggable delay calculation for retry attempts:
- FixedBackoff: same delay every time
- LinearBackoff: base * attempt
- ExponentialBackoff: base * 2^(attempt - 1)

Attempts are 1-indexed (the delay after the first failed attempt is
`delay(1)`) and every strategy is capped at `max_delay_ms`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

BackoffKind = Literal["fixed", "linear", "exponential"]


@runtime_checkable
class Backoff(Protocol):
    """Protocol for backoff delay calculation."""

    def delay(self, attempt: int) -> float:
        """Delay in milliseconds after failed attempt number `attempt` (1-indexed)."""
        ...


@dataclass(frozen=True, slots=True)
class FixedBackoff:
    """Delay = min(max_delay, base)"""

    base_ms: float = 1000.0
    max_delay_ms: float = 30_000.0

    def delay(self, attempt: int) -> float:
        return min(self.max_delay_ms, self.base_ms)


@dataclass(frozen=True, slots=True)
class LinearBackoff:
    """Delay = min(max_delay, base * attempt)"""

    base_ms: float = 1000.0
    max_delay_ms: float = 30_000.0

    def delay(self, attempt: int) -> float:
        return min(self.max_delay_ms, self.base_ms * attempt)


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Delay = min(max_delay, base * 2^(attempt - 1))"""

    base_ms: float = 1000.0
    max_delay_ms: float = 30_000.0

    def delay(self, attempt: int) -> float:
        return min(self.max_delay_ms, self.base_ms * (2 ** (attempt - 1)))


_KINDS: dict[str, type[FixedBackoff | LinearBackoff | ExponentialBackoff]] = {
    "fixed": FixedBackoff,
    "linear": LinearBackoff,
    "exponential": ExponentialBackoff,
}


def make_backoff(kind: BackoffKind, base_ms: float, max_delay_ms: float) -> Backoff:
    """Build a strategy by name."""
    try:
        return _KINDS[kind](base_ms=base_ms, max_delay_ms=max_delay_ms)
    except KeyError:
        raise ValueError(f"Unknown backoff {kind!r}. Use 'fixed', 'linear' or 'exponential'") from None
