"""Dispatch core: the one entry point every transport calls.

Resolves a qualified tool name against the registry, binds the call
arguments to the handler's signature, and runs the handler through its
modifier chain. Holds no transport state. Handler failures propagate
unchanged; the dispatcher never wraps or swallows them.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping

from fluxkit.foundation.errors import InvalidArgumentsError
from fluxkit.foundation.registry import (
    MethodDescriptor,
    ToolDefinition,
    ToolRegistry,
    get_registry,
    qualified_name,
    state_key,
)
from fluxkit.runtime.middleware import Call, ModifierState, Next, compose

logger = logging.getLogger("fluxkit.server")

_NAMED_KINDS = (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)


def bind_arguments(
    tool: str,
    handler: Callable[..., object],
    arguments: Mapping[str, object] | None,
) -> tuple[tuple[object, ...], dict[str, object]]:
    """Turn a JSON argument object into (args, kwargs) for `handler`.

    When every key names a declared parameter (or the handler takes
    **kwargs) the arguments are matched by name. Otherwise the values are
    passed positionally in the object's enumeration order, for callers
    that send `{"arg0": ..., "arg1": ...}` or other placeholder keys.

    Raises:
        InvalidArgumentsError: arguments are not an object or do not fit the signature
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise InvalidArgumentsError(tool, "arguments must be a JSON object")
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return tuple(arguments.values()), {}

    params = sig.parameters.values()
    names = {p.name for p in params if p.kind in _NAMED_KINDS}
    takes_kwargs = any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params)

    if takes_kwargs or all(key in names for key in arguments):
        args, kwargs = (), dict(arguments)
    else:
        logger.debug(f"[{tool}] argument keys {list(arguments)} do not match parameters; binding positionally")
        args, kwargs = tuple(arguments.values()), {}

    try:
        bound = sig.bind(*args, **kwargs)
    except TypeError as e:
        raise InvalidArgumentsError(tool, str(e)) from e
    return bound.args, bound.kwargs


class Dispatcher:
    """Resolve and invoke tools on connector instances.

    Owns the process-scoped ModifierState (caches, token buckets) so that
    every transport serving the same dispatcher shares them. Modifier chains
    are composed once per method, the first time the method is called.

    Example:
        >>> dispatcher = Dispatcher(registry)
        >>> dispatcher.get_tools(WeatherConnector())
        [ToolDefinition(name='weather.getWeather', ...)]
        >>> await dispatcher.call_tool(connector, "weather.getWeather", {"city": "Tokyo"})
    """

    __slots__ = ("_registry", "_state", "_chains")

    def __init__(self, registry: ToolRegistry | None = None, state: ModifierState | None = None) -> None:
        self._registry = registry or get_registry()
        self._state = state or ModifierState()
        self._chains: dict[tuple[type, str], Next] = {}

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def state(self) -> ModifierState:
        return self._state

    def get_tools(self, instance: object) -> list[ToolDefinition]:
        """Tool definitions for `instance`. Raises MissingConnectorMetadataError."""
        return self._registry.list_tools(instance)

    def _chain(self, instance: object, method: MethodDescriptor) -> Next:
        key = (type(instance), method.name)
        chain = self._chains.get(key)
        if chain is None:
            chain = self._chains[key] = compose(method.middleware)
        return chain

    async def call_tool(
        self,
        instance: object,
        tool_name: str,
        arguments: Mapping[str, object] | None = None,
    ) -> object:
        """Invoke a tool and return the handler's result unmodified.

        Raises:
            MissingConnectorMetadataError: instance's type was never registered
            UnknownToolError: no method matches `tool_name`
            InvalidArgumentsError: arguments do not fit the handler signature
            Exception: whatever the handler or a modifier raised, unchanged
        """
        method = self._registry.resolve(instance, tool_name)
        tool = qualified_name(self._registry.connector(instance), method)
        args, kwargs = bind_arguments(tool, getattr(instance, method.method_key), arguments)
        call = Call(
            tool=tool,
            key=state_key(type(instance), method),
            instance=instance,
            method=method,
            args=args,
            kwargs=kwargs,
            state=self._state,
        )
        return await self._chain(instance, method)(call)
