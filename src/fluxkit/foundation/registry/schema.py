"""Best-effort input schemas from method signatures.

Descriptive metadata only: dispatch never validates or coerces arguments
against these schemas.
"""

from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Callable, Sequence
from typing import get_args, get_origin, get_type_hints

JsonSchema = dict[str, object]

_EMPTY_SCHEMA: JsonSchema = {"type": "object", "properties": {}}

_SCALARS: dict[type, str] = {
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
}


def json_type(hint: object) -> str:
    """Map a type hint to a JSON schema type name. Unknown types are "object"."""
    origin = get_origin(hint)
    if origin in (typing.Union, types.UnionType):
        # Optional[X] -> X; other unions are described loosely
        members = [a for a in get_args(hint) if a is not type(None)]
        return json_type(members[0]) if len(members) == 1 else "object"
    if origin is typing.Literal:
        values = get_args(hint)
        return json_type(type(values[0])) if values else "object"
    target = origin or hint
    if not isinstance(target, type):
        return "object"
    # bool before int: bool is an int subclass
    for scalar, name in _SCALARS.items():
        if issubclass(target, scalar):
            return name
    if issubclass(target, (list, tuple, set, frozenset)) or (
        issubclass(target, Sequence) and not issubclass(target, (str, bytes))
    ):
        return "array"
    return "object"


def input_schema(func: Callable[..., object]) -> JsonSchema:
    """Build `{"type": "object", "properties": ..., "required": [...]}` for `func`.

    One property per declared parameter (self/cls and *args/**kwargs skipped),
    typed from annotations when available. Parameters without a default are
    required. Falls back to an untyped object schema when the callable cannot
    be introspected.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return dict(_EMPTY_SCHEMA)
    try:
        hints = get_type_hints(func)
    except Exception:  # unresolved forward refs leave the params untyped
        hints = {}

    properties: dict[str, JsonSchema] = {}
    required: list[str] = []
    for name, param in sig.parameters.items():
        if name in ("self", "cls") or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        prop: JsonSchema = {"type": json_type(hints[name])} if name in hints else {}
        if param.default is not inspect.Parameter.empty and _is_json_scalar(param.default):
            prop["default"] = param.default
        properties[name] = prop
        if param.default is inspect.Parameter.empty:
            required.append(name)

    schema: JsonSchema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _is_json_scalar(value: object) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))
