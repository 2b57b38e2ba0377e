"""Tests for environment-driven settings and logging setup."""

from __future__ import annotations

import io
import logging

import orjson
import pytest

from fluxkit.foundation.config import clear_settings_cache, get_settings
from fluxkit.observability import configure_logging, get_logger


def test_defaults() -> None:
    settings = get_settings()

    assert settings.cache.ttl_ms == 60_000
    assert settings.cache.max_entries == 100
    assert settings.retry.attempts == 3
    assert settings.retry.backoff == "exponential"
    assert settings.http.port == 3000
    assert settings.http.prefix == "/api"
    assert settings.socket.request_timeout == 30.0
    assert settings.socket.max_reconnect_attempts == 5
    assert settings.stream.protocol_version == "2024-11-05"


def test_cached_until_cleared(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("FLUX_HTTP_PORT", "8080")
    assert get_settings().http.port == 3000
    clear_settings_cache()
    assert get_settings().http.port == 8080


@pytest.mark.parametrize(("raw", "expected"), [("api/", "/api"), ("/v1//", "/v1"), ("", "")])
def test_http_prefix_normalized(monkeypatch: pytest.MonkeyPatch, raw: str, expected: str) -> None:
    monkeypatch.setenv("FLUX_HTTP_PREFIX", raw)
    clear_settings_cache()
    assert get_settings().http.prefix == expected


def test_invalid_values_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLUX_RETRY_BACKOFF", "random")
    clear_settings_cache()
    with pytest.raises(ValueError):
        get_settings()


class TestLogging:
    @pytest.fixture(autouse=True)
    def restore_logger(self) -> object:
        logger = logging.getLogger("fluxkit")
        handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
        yield
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate

    def test_json_format(self) -> None:
        out = io.StringIO()
        configure_logging("json", "DEBUG", output=out)

        get_logger("server").info("tool called", extra={"tool": "weather.getWeather"})

        entry = orjson.loads(out.getvalue().strip())
        assert entry["logger"] == "fluxkit.server"
        assert entry["level"] == "info"
        assert entry["event"] == "tool called"
        assert entry["tool"] == "weather.getWeather"

    def test_text_format_and_level(self) -> None:
        out = io.StringIO()
        configure_logging("text", "WARNING", output=out)

        get_logger("transport").info("hidden")
        get_logger("fluxkit.transport").warning("shown", extra={"peer": "abc"})

        lines = out.getvalue().strip().splitlines()
        assert len(lines) == 1
        assert "[warning] fluxkit.transport: shown peer='abc'" in lines[0]

    def test_reconfigure_replaces_handler(self) -> None:
        configure_logging("text", output=io.StringIO())
        logger = configure_logging("json", output=io.StringIO())

        assert sum(1 for h in logger.handlers if getattr(h, "_fluxkit", False)) == 1

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError):
            configure_logging("xml")
