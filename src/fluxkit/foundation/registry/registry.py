"""Central registry of connector types and their exposed methods.

The registry provides:
- Connector metadata (name, version, description) per connector type
- An ordered, declaration-order list of exposed methods per type
- Per-method modifier chains (cache, rate limit, retry, ...)
- Wire-facing tool definitions derived on demand
- Resolution of `connector.method` names to method descriptors

Registration is explicit and happens once at startup, before any
connector instance exists:

    >>> registry = ToolRegistry()
    >>> (registry.register(WeatherConnector, "weather", description="Weather data")
    ...     .method("get_weather", name="getWeather", description="Current weather")
    ...     .method("get_forecast", middleware=[CacheMiddleware(ttl_ms=30_000)]))
    >>> registry.list_tools(WeatherConnector())[0].name
    'weather.getWeather'
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from fluxkit.foundation.errors import DuplicateConnectorError, MissingConnectorMetadataError, UnknownToolError

from .schema import JsonSchema, input_schema

if TYPE_CHECKING:
    from fluxkit.runtime.middleware import Middleware

DEFAULT_VERSION = "1.0.0"


@dataclass(frozen=True, slots=True)
class ConnectorDescriptor:
    """Connector-level metadata. One per connector type, immutable."""
    name: str
    version: str = DEFAULT_VERSION
    description: str = ""


@dataclass(frozen=True, slots=True)
class MethodDescriptor:
    """One exposed method.

    Attributes:
        name: Public short name (the part after `connector.`)
        description: Human-readable description
        method_key: Attribute name of the handler on the connector class
        middleware: Modifier chain, first = outermost
    """
    name: str
    description: str
    method_key: str
    middleware: tuple[Middleware, ...] = field(default=(), compare=False)


class ToolDefinition(BaseModel):
    """Wire-facing tool description. Derived on demand, never stored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(description="Qualified name: connector.method")
    description: str = ""
    input_schema: JsonSchema = Field(default_factory=dict, alias="inputSchema")

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


def qualified_name(connector: ConnectorDescriptor, method: MethodDescriptor) -> str:
    return f"{connector.name}.{method.name}"


def state_key(cls: type, method: MethodDescriptor) -> str:
    """Identity of one method on one connector type, for per-tool modifier state.

    Two types registered under the same connector name get distinct keys.
    """
    return f"{cls.__module__}.{cls.__qualname__}.{method.method_key}"


class ConnectorBuilder:
    """Fluent helper returned by ToolRegistry.register().

    Each `.method()` call appends one method in declaration order.
    """

    __slots__ = ("_registry", "_connector_type")

    def __init__(self, registry: ToolRegistry, connector_type: type) -> None:
        self._registry = registry
        self._connector_type = connector_type

    @property
    def connector_type(self) -> type:
        return self._connector_type

    def method(
        self,
        method_key: str,
        *,
        name: str | None = None,
        description: str | None = None,
        middleware: Sequence[Middleware] = (),
    ) -> ConnectorBuilder:
        self._registry.register_method(
            self._connector_type, method_key, name=name, description=description, middleware=middleware,
        )
        return self


class ToolRegistry:
    """Holds connector metadata and method lists keyed by connector type.

    Pure data: built once at startup and read-only afterwards. Lookups for
    an instance walk its type's MRO, so subclasses of a registered connector
    inherit its metadata.
    """

    __slots__ = ("_connectors", "_methods")

    def __init__(self) -> None:
        self._connectors: dict[type, ConnectorDescriptor] = {}
        self._methods: dict[type, list[MethodDescriptor]] = {}

    # ─────────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────────

    def register(
        self,
        connector_type: type,
        name: str,
        *,
        version: str | None = None,
        description: str | None = None,
    ) -> ConnectorBuilder:
        """Record connector metadata for a type.

        Registering the same type again under the same name is a no-op (the
        first metadata wins). A different name raises DuplicateConnectorError.
        """
        if not name or "." in name:
            raise ValueError(f"Invalid connector name {name!r}: must be non-empty and contain no '.'")
        existing = self._connectors.get(connector_type)
        if existing is not None:
            if existing.name != name:
                raise DuplicateConnectorError(
                    f"{connector_type.__qualname__} already registered as '{existing.name}', not '{name}'"
                )
            return ConnectorBuilder(self, connector_type)
        self._connectors[connector_type] = ConnectorDescriptor(
            name=name,
            version=version or DEFAULT_VERSION,
            description=description or f"{name} connector",
        )
        self._methods.setdefault(connector_type, [])
        return ConnectorBuilder(self, connector_type)

    def register_method(
        self,
        connector_type: type,
        method_key: str,
        *,
        name: str | None = None,
        description: str | None = None,
        middleware: Sequence[Middleware] = (),
    ) -> MethodDescriptor:
        """Append a method to the type's ordered method list.

        May run before or after register() for the same type.
        """
        if not callable(getattr(connector_type, method_key, None)):
            raise ValueError(f"{connector_type.__qualname__}.{method_key} is not a method")
        methods = self._methods.setdefault(connector_type, [])
        short = name or method_key
        if any(m.name == short for m in methods):
            raise DuplicateConnectorError(f"Method '{short}' already registered on {connector_type.__qualname__}")
        descriptor = MethodDescriptor(
            name=short,
            description=description or method_key,
            method_key=method_key,
            middleware=tuple(middleware),
        )
        methods.append(descriptor)
        return descriptor

    # ─────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────

    def _owner(self, connector_type: type) -> type | None:
        return next((t for t in connector_type.__mro__ if t in self._connectors), None)

    def connector(self, instance: object) -> ConnectorDescriptor:
        """Connector metadata for an instance. Raises MissingConnectorMetadataError."""
        owner = self._owner(type(instance))
        if owner is None:
            raise MissingConnectorMetadataError(type(instance))
        return self._connectors[owner]

    def methods(self, instance: object) -> tuple[MethodDescriptor, ...]:
        owner = self._owner(type(instance))
        if owner is None:
            raise MissingConnectorMetadataError(type(instance))
        return tuple(self._methods.get(owner, ()))

    def list_tools(self, instance: object) -> list[ToolDefinition]:
        """One ToolDefinition per method, in declaration order."""
        connector = self.connector(instance)
        cls = type(instance)
        return [
            ToolDefinition(
                name=qualified_name(connector, m),
                description=m.description,
                input_schema=input_schema(getattr(cls, m.method_key)),
            )
            for m in self.methods(instance)
        ]

    def resolve(self, instance: object, tool_name: str) -> MethodDescriptor:
        """Resolve `connector.method` (or a bare method name) to its descriptor."""
        connector = self.connector(instance)
        prefix = f"{connector.name}."
        short = tool_name[len(prefix):] if tool_name.startswith(prefix) else tool_name
        for method in self.methods(instance):
            if method.name == short:
                return method
        raise UnknownToolError(tool_name)

    def is_registered(self, connector_type: type) -> bool:
        return self._owner(connector_type) is not None

    def __iter__(self) -> Iterator[tuple[ConnectorDescriptor, tuple[MethodDescriptor, ...]]]:
        for cls, descriptor in self._connectors.items():
            yield descriptor, tuple(self._methods.get(cls, ()))

    def __len__(self) -> int:
        return len(self._connectors)

    def clear(self) -> None:
        self._connectors.clear()
        self._methods.clear()


_registry: ToolRegistry | None = None


def get_registry() -> ToolRegistry:
    """Process-wide default registry (created on first use)."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
    return _registry


def reset_registry() -> None:
    """Drop the default registry (useful for testing)."""
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None
