import json
import logging
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional

from fastmcp import Client
from mcp.types import Implementation

from ..config import ServerConfig

logger = logging.getLogger(__name__)

CLIENT_VERSION = "0.1.0"


def _result_to_string(result: Any) -> str:
    """Convert a CallToolResult (or similar) into a string payload."""
    content = getattr(result, "content", None)
    if isinstance(content, list) and content:
        first = content[0]
        text = getattr(first, "text", None) or getattr(first, "value", None)
        if text is not None:
            return str(text)
    if hasattr(result, "model_dump"):
        return json.dumps(result.model_dump(exclude_none=True, by_alias=True))
    try:
        return json.dumps(result)
    except TypeError:
        return str(result)


class MCPConnection:
    """One live session with a tool server, owned by whoever opened it.

    The FastMCP client runs its session in a background task, so the context
    entered in `connect` may be exited from another task in `close`.
    """

    def __init__(self, config: ServerConfig, transport: Any, client_name: str) -> None:
        self.config = config
        self.client = Client(
            transport,
            name=client_name,
            client_info=Implementation(name="toolbridge", version=CLIENT_VERSION),
        )
        self._stack: Optional[AsyncExitStack] = None
        self._closed = False

    async def connect(self) -> None:
        stack = AsyncExitStack()
        await stack.enter_async_context(self.client)
        self._stack = stack

    async def list_tools(self) -> List[Any]:
        return await self.client.list_tools()

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """Structured content when the server sends an object, text otherwise."""
        result = await self.client.call_tool(tool_name, arguments or {})
        structured = getattr(result, "structured_content", None)
        if isinstance(structured, dict):
            return structured
        return _result_to_string(result)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        stack, self._stack = self._stack, None
        if stack is None:
            return
        try:
            await stack.aclose()
        except Exception:
            logger.debug("Error closing FastMCP client for %s", self.config.label, exc_info=True)

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.config.label} ({self.config.transport.value})>"
