"""Shared fixtures: a controllable clock, a fresh registry and a sample connector."""

from __future__ import annotations

import pytest

from fluxkit.foundation.config import clear_settings_cache
from fluxkit.foundation.registry import ToolRegistry, reset_registry
from fluxkit.runtime.middleware import ModifierState


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class Weather:
    """Sample connector used across the suite."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def get_weather(self, city: str, units: str = "metric") -> dict:
        self.calls.append((city, units))
        return {"city": city, "units": units, "temp": 21}

    def ping(self) -> str:
        return "pong"

    async def explode(self) -> None:
        raise RuntimeError("boom")


@pytest.fixture(autouse=True)
def clean_globals() -> object:
    """Fresh settings and default registry for every test."""
    clear_settings_cache()
    reset_registry()
    yield
    reset_registry()
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(clock: FakeClock) -> ModifierState:
    return ModifierState(clock)


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture
def weather_registry(registry: ToolRegistry) -> ToolRegistry:
    (registry.register(Weather, "weather", description="Weather lookups")
        .method("get_weather", name="getWeather", description="Current weather for a city")
        .method("ping")
        .method("explode"))
    return registry
