"""Tests for connector registration, tool listing and name resolution."""

from __future__ import annotations

import pytest

from fluxkit.foundation.errors import DuplicateConnectorError, MissingConnectorMetadataError, UnknownToolError
from fluxkit.foundation.registry import ToolRegistry, get_registry, input_schema, json_type, reset_registry

from .conftest import Weather


def test_list_tools_in_declaration_order(weather_registry: ToolRegistry) -> None:
    tools = weather_registry.list_tools(Weather())

    assert [t.name for t in tools] == ["weather.getWeather", "weather.ping", "weather.explode"]
    assert tools[0].description == "Current weather for a city"
    assert tools[1].description == "ping"


def test_connector_metadata_defaults(weather_registry: ToolRegistry) -> None:
    descriptor = weather_registry.connector(Weather())
    assert descriptor.name == "weather"
    assert descriptor.version == "1.0.0"
    assert descriptor.description == "Weather lookups"

    registry = ToolRegistry()
    registry.register(Weather, "wx")
    assert registry.connector(Weather()).description == "wx connector"


def test_tool_definition_wire_shape(weather_registry: ToolRegistry) -> None:
    wire = weather_registry.list_tools(Weather())[0].to_wire()

    assert wire == {
        "name": "weather.getWeather",
        "description": "Current weather for a city",
        "inputSchema": {
            "type": "object",
            "properties": {
                "city": {"type": "string"},
                "units": {"type": "string", "default": "metric"},
            },
            "required": ["city"],
        },
    }


def test_unregistered_type_raises(registry: ToolRegistry) -> None:
    with pytest.raises(MissingConnectorMetadataError):
        registry.list_tools(Weather())
    with pytest.raises(MissingConnectorMetadataError):
        registry.resolve(Weather(), "weather.ping")


def test_reregistration_same_name_is_noop(weather_registry: ToolRegistry) -> None:
    weather_registry.register(Weather, "weather", version="9.9.9")
    assert weather_registry.connector(Weather()).version == "1.0.0"
    assert len(weather_registry) == 1


def test_reregistration_conflicting_name_raises(weather_registry: ToolRegistry) -> None:
    with pytest.raises(DuplicateConnectorError):
        weather_registry.register(Weather, "climate")


def test_duplicate_method_name_raises(weather_registry: ToolRegistry) -> None:
    with pytest.raises(DuplicateConnectorError):
        weather_registry.register_method(Weather, "ping")
    with pytest.raises(DuplicateConnectorError):
        weather_registry.register_method(Weather, "explode", name="getWeather")


@pytest.mark.parametrize("name", ["", "a.b"])
def test_invalid_connector_name(registry: ToolRegistry, name: str) -> None:
    with pytest.raises(ValueError):
        registry.register(Weather, name)


def test_register_method_requires_callable(registry: ToolRegistry) -> None:
    registry.register(Weather, "weather")
    with pytest.raises(ValueError):
        registry.register_method(Weather, "missing")


def test_resolve_qualified_and_bare_names(weather_registry: ToolRegistry) -> None:
    instance = Weather()
    assert weather_registry.resolve(instance, "weather.getWeather").method_key == "get_weather"
    assert weather_registry.resolve(instance, "getWeather").method_key == "get_weather"
    with pytest.raises(UnknownToolError, match="Unknown tool: weather.nope"):
        weather_registry.resolve(instance, "weather.nope")
    # Method keys are not public names
    with pytest.raises(UnknownToolError):
        weather_registry.resolve(instance, "weather.get_weather")


def test_subclass_inherits_registration(weather_registry: ToolRegistry) -> None:
    class LocalWeather(Weather):
        pass

    assert weather_registry.is_registered(LocalWeather)
    assert [t.name for t in weather_registry.list_tools(LocalWeather())][0] == "weather.getWeather"


def test_default_registry_singleton() -> None:
    registry = get_registry()
    assert get_registry() is registry
    registry.register(Weather, "weather")
    reset_registry()
    assert get_registry() is not registry
    assert len(get_registry()) == 0


class TestSchema:
    def test_json_types(self) -> None:
        assert json_type(str) == "string"
        assert json_type(int) == "integer"
        assert json_type(float) == "number"
        assert json_type(bool) == "boolean"
        assert json_type(list[int]) == "array"
        assert json_type(tuple) == "array"
        assert json_type(dict[str, int]) == "object"
        assert json_type(str | None) == "string"
        assert json_type(int | str) == "object"

    def test_untyped_parameters(self) -> None:
        def handler(a, b=3):  # noqa: ANN001, ANN202
            return a

        assert input_schema(handler) == {
            "type": "object",
            "properties": {"a": {}, "b": {"default": 3}},
            "required": ["a"],
        }

    def test_varargs_skipped(self) -> None:
        def handler(*args: int, **kwargs: str) -> None: ...

        assert input_schema(handler) == {"type": "object", "properties": {}}

