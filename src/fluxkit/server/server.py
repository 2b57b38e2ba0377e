"""FluxServer: one connector instance bound to a dispatcher and a transport.

Example:
    >>> registry = get_registry()
    >>> registry.register(WeatherConnector, "weather").method("get_weather", name="getWeather")
    >>> server = FluxServer(WeatherConnector)
    >>> server.set_transport(StdioTransport(server))
    >>> asyncio.run(server.serve_forever())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from fluxkit.foundation.registry import ToolDefinition, ToolRegistry
from fluxkit.runtime.middleware import ModifierState

from .dispatch import Dispatcher

if TYPE_CHECKING:
    from fluxkit.transport import Transport

logger = logging.getLogger("fluxkit.server")


class FluxServer:
    """Serve one connector's tools.

    Args:
        connector: Connector instance, or a connector class to instantiate
            with no arguments
        registry: Registry holding the connector's metadata (default: the
            process-wide registry)
        state: Modifier state; pass one to share caches and buckets between
            servers
        dispatcher: Prebuilt dispatcher (overrides registry/state)
    """

    __slots__ = ("_connector", "_dispatcher", "_transport")

    def __init__(
        self,
        connector: object,
        *,
        registry: ToolRegistry | None = None,
        state: ModifierState | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        self._connector = connector() if isinstance(connector, type) else connector
        self._dispatcher = dispatcher or Dispatcher(registry, state)
        self._transport: Transport | None = None

    @property
    def connector(self) -> object:
        return self._connector

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def registry(self) -> ToolRegistry:
        return self._dispatcher.registry

    @property
    def state(self) -> ModifierState:
        return self._dispatcher.state

    @property
    def transport(self) -> Transport | None:
        return self._transport

    def get_tools(self) -> list[ToolDefinition]:
        return self._dispatcher.get_tools(self._connector)

    def list_tools(self) -> list[dict[str, object]]:
        """Tool definitions in wire shape (`inputSchema` key)."""
        return [t.to_wire() for t in self.get_tools()]

    async def call_tool(self, name: str, arguments: Mapping[str, object] | None = None) -> object:
        return await self._dispatcher.call_tool(self._connector, name, arguments)

    def set_transport(self, transport: Transport) -> None:
        self._transport = transport

    async def start(self) -> None:
        if self._transport is None:
            raise RuntimeError("Transport not set. Call set_transport() first.")
        logger.info(f"Starting {type(self._transport).__name__} for {type(self._connector).__name__}")
        await self._transport.start()

    async def stop(self) -> None:
        if self._transport is not None:
            await self._transport.stop()

    async def serve_forever(self) -> None:
        """Start the transport and block until it closes, then stop it."""
        await self.start()
        try:
            await self._transport.wait_closed()  # type: ignore[union-attr]
        finally:
            await self.stop()
