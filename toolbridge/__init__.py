"""Connect to MCP tool servers and expose their tools as one registry."""

from .config import IdCapabilities, ServerConfig, TransportKind, load_mcp_config, server_configs_from_config
from .connections import MCPConnections, connect_servers
from .enrichment import IdEnricher, detect_ids
from .errors import EnhancedError, ErrorCategory, classify, create_friendly_error_response, format_error_for_user
from .exceptions import ToolbridgeError, ToolNotCallableError, ToolTimeoutError
from .lifecycle import LifecycleCoordinator
from .tools import Tool, ToolRegistry, adapt_tool, sanitize_schema

__version__ = "0.1.0"

__all__ = [
    "EnhancedError",
    "IdCapabilities",
    "IdEnricher",
    "ErrorCategory",
    "LifecycleCoordinator",
    "MCPConnections",
    "ServerConfig",
    "Tool",
    "ToolNotCallableError",
    "ToolRegistry",
    "ToolTimeoutError",
    "ToolbridgeError",
    "TransportKind",
    "adapt_tool",
    "classify",
    "connect_servers",
    "create_friendly_error_response",
    "detect_ids",
    "format_error_for_user",
    "load_mcp_config",
    "sanitize_schema",
    "server_configs_from_config",
]
