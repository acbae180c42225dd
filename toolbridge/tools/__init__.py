"""Tool normalization package.

Public surface is re-exported here so callers can keep using
`from toolbridge.tools import ToolRegistry, adapt_tool`, etc.
"""

from .adapter import ENTRY_POINTS, GRAPHQL_SCHEMA, adapt_graphql_arguments, adapt_tool, is_graphql_tool
from .metrics import TOOL_METRICS, ToolMetrics
from .registry import Tool, ToolRegistry
from .schema import sanitize_schema, sanitize_tool_parameters
from .validation import PermissiveArgs, schema_to_model

__all__ = [
    "ENTRY_POINTS",
    "GRAPHQL_SCHEMA",
    "PermissiveArgs",
    "TOOL_METRICS",
    "Tool",
    "ToolMetrics",
    "ToolRegistry",
    "adapt_graphql_arguments",
    "adapt_tool",
    "is_graphql_tool",
    "sanitize_schema",
    "sanitize_tool_parameters",
    "schema_to_model",
]
