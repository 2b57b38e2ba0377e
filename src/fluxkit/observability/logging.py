"""Logging setup for fluxkit.

All modules log through stdlib loggers under the `fluxkit` namespace
(`fluxkit.server`, `fluxkit.middleware`, `fluxkit.transport`, ...).
`configure_logging` attaches one handler to the `fluxkit` logger:

- "text": human-readable `timestamp [level] logger: message key=value`
- "json": JSON Lines rendered with orjson, for log aggregation
- "none": silence fluxkit output

Output goes to stderr unless told otherwise. The stdio transport owns
stdout, so logs must never land there while it runs.

Example:
    >>> from fluxkit.observability import configure_logging, get_logger
    >>> configure_logging(format="json", level="DEBUG")
    >>> log = get_logger("server")
    >>> log.info("tool called", extra={"tool": "weather.getWeather"})
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

import orjson

from fluxkit.foundation.config import get_settings

ROOT_LOGGER = "fluxkit"

# Attributes every LogRecord carries; anything else came in via `extra=`.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict[str, object]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}


class TextFormatter(logging.Formatter):
    """Format: timestamp [level] logger: message key=value ..."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%d %H:%M:%S")
        parts = [f"{ts} [{record.levelname.lower()}] {record.name}: {record.getMessage()}"]
        parts += [f"{k}={v!r}" for k, v in sorted(_extras(record).items())]
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonFormatter(logging.Formatter):
    """JSON Lines output."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str, option=orjson.OPT_NON_STR_KEYS).decode()


def configure_logging(
    format: str | None = None,  # noqa: A002 - matches settings field
    level: str | None = None,
    *,
    output: TextIO | None = None,
) -> logging.Logger:
    """Configure the `fluxkit` logger. Defaults come from FLUX_LOG_* settings.

    Calling it again replaces the previously installed handler.
    """
    settings = get_settings().logging
    fmt = format or settings.format
    logger = logging.getLogger(ROOT_LOGGER)
    for old in [h for h in logger.handlers if getattr(h, "_fluxkit", False)]:
        logger.removeHandler(old)

    match fmt:
        case "text":
            formatter: logging.Formatter = TextFormatter()
        case "json":
            formatter = JsonFormatter()
        case "none":
            handler: logging.Handler = logging.NullHandler()
            handler._fluxkit = True  # type: ignore[attr-defined]
            logger.addHandler(handler)
            logger.propagate = False
            return logger
        case _:
            raise ValueError(f"Unknown format: {fmt}. Use 'text', 'json', or 'none'")

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(formatter)
    handler._fluxkit = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, (level or settings.level).upper(), logging.INFO))
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the fluxkit namespace: get_logger("server") -> fluxkit.server."""
    return logging.getLogger(name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}")


def include_traceback(log: logging.Logger) -> bool:
    """Attach tracebacks to failure logs when FLUX_DEBUG is set or `log` is at DEBUG."""
    return get_settings().debug or log.isEnabledFor(logging.DEBUG)
