from .registry import (
    ConnectorBuilder,
    ConnectorDescriptor,
    MethodDescriptor,
    ToolDefinition,
    ToolRegistry,
    get_registry,
    qualified_name,
    reset_registry,
    state_key,
)
from .schema import JsonSchema, input_schema, json_type

__all__ = [
    "ConnectorBuilder",
    "ConnectorDescriptor",
    "MethodDescriptor",
    "ToolDefinition",
    "ToolRegistry",
    "get_registry",
    "qualified_name",
    "reset_registry",
    "state_key",
    "JsonSchema",
    "input_schema",
    "json_type",
]
