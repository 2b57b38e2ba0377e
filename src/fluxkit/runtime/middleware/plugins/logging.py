"""Logging middleware for tool execution."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from ..middleware import Call, Next

logger = logging.getLogger("fluxkit.middleware")


@dataclass(slots=True)
class LoggingMiddleware:
    """Log tool execution with timing and result status.

    Logs at INFO level for successful calls, with traceback on failure.
    Duration is stored in the call context as 'duration_ms'.

    Args:
        log: Logger instance to use (defaults to fluxkit.middleware)
        log_params: Whether to include arguments in log (default False for privacy)
    """

    log: logging.Logger = field(default_factory=lambda: logger)
    log_params: bool = False

    async def __call__(self, call: Call, next: Next) -> object:
        start = time.perf_counter()
        param_str = f" args={call.args!r} kwargs={call.kwargs!r}" if self.log_params else ""
        self.log.info(f"[{call.tool}] Starting{param_str}")

        try:
            result = await next(call)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            call.context["duration_ms"] = duration_ms
            self.log.exception(f"[{call.tool}] EXCEPTION ({duration_ms:.1f}ms): {e}")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        call.context["duration_ms"] = duration_ms
        self.log.info(f"[{call.tool}] OK ({duration_ms:.1f}ms)")
        return result
