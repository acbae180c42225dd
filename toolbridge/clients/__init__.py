from ..config import ServerConfig, TransportKind
from .base import MCPConnection
from .http import MCPHttpConnection
from .sse import MCPSSEConnection


def open_connection(config: ServerConfig) -> MCPConnection:
    """Pick the connection class for the configured transport. Nothing is dialled yet."""
    if config.transport is TransportKind.SSE:
        return MCPSSEConnection(config)
    return MCPHttpConnection(config)


__all__ = [
    "MCPConnection",
    "MCPHttpConnection",
    "MCPSSEConnection",
    "open_connection",
]
