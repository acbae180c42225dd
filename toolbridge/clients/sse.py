from fastmcp.client.transports import SSETransport

from ..config import ServerConfig
from .base import MCPConnection


class MCPSSEConnection(MCPConnection):
    """Server-sent events connection to a FastMCP-compatible server."""

    def __init__(self, config: ServerConfig) -> None:
        transport = SSETransport(
            url=config.url,
            headers=config.request_headers(),
        )
        super().__init__(config, transport, client_name="toolbridge-sse")
