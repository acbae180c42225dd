from fastmcp.client.transports import StreamableHttpTransport

from ..config import ServerConfig
from .base import MCPConnection


class MCPHttpConnection(MCPConnection):
    """Streamable HTTP connection to a FastMCP-compatible server."""

    def __init__(self, config: ServerConfig) -> None:
        transport = StreamableHttpTransport(
            url=config.url,
            headers=config.request_headers(),
        )
        super().__init__(config, transport, client_name="toolbridge-http")
