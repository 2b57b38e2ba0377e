"""Core middleware types and chain composition.

Middleware follows continuation-passing style: each middleware receives
the call and a `next` function to call downstream. Composing a list
nests the middleware as ordinary function wrapping, so the first item
sees the call first and its result last.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fluxkit.foundation.registry import MethodDescriptor

    from .state import ModifierState


@dataclass(slots=True)
class Call:
    """One tool invocation as it travels through the modifier chain.

    Attributes:
        tool: Qualified tool name (`connector.method`)
        key: Connector type plus method; keys caches and per-method buckets
        instance: Connector instance the handler is bound to
        method: Descriptor of the resolved method
        args: Positional arguments after binding
        kwargs: Keyword-only arguments after binding
        state: Process-scoped modifier state (caches, token buckets, clock)
        context: Request-scoped scratch space shared between middleware
    """

    tool: str
    key: str
    instance: object
    method: MethodDescriptor
    args: tuple[object, ...]
    kwargs: dict[str, object]
    state: ModifierState
    context: dict[str, object] = field(default_factory=dict)


Next = Callable[[Call], Awaitable[object]]


@runtime_checkable
class Middleware(Protocol):
    """Protocol for call modifiers.

    Example:
        >>> class TimingMiddleware:
        ...     async def __call__(self, call, next):
        ...         start = time.perf_counter()
        ...         result = await next(call)
        ...         call.context["duration"] = time.perf_counter() - start
        ...         return result
    """

    async def __call__(self, call: Call, next: Next) -> object:
        """Run modifier logic, delegating to `next` to reach the handler."""
        ...


async def invoke_handler(call: Call) -> object:
    """Innermost link: call the bound method, awaiting it if needed."""
    result = getattr(call.instance, call.method.method_key)(*call.args, **call.kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def compose(middleware: Sequence[Middleware], base: Next = invoke_handler) -> Next:
    """Compose middleware into a single execution function.

    Args:
        middleware: Ordered list of middleware (first = outermost)
        base: Innermost function, defaults to invoking the handler

    Returns:
        Composed async function: (call) -> result
    """
    chain: Next = base
    for mw in reversed(middleware):
        def make_wrapper(m: Middleware, nxt: Next) -> Next:
            async def wrapped(call: Call) -> object:
                return await m(call, nxt)
            return wrapped
        chain = make_wrapper(mw, chain)
    return chain
