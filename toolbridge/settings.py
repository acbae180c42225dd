import logging
import os

from dotenv import load_dotenv


# Load .env early so environment overrides apply even when the CLI is not the entry point.
load_dotenv()

logger = logging.getLogger(__name__)


def _env_ms(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default
    return value if value > minimum else default


DEFAULT_TOOL_TIMEOUT_MS = _env_ms("MCP_TOOL_TIMEOUT_MS", 30_000, minimum=1000)
HTTP_CONNECT_TIMEOUT_MS = _env_ms("MCP_HTTP_CONNECT_TIMEOUT_MS", 6_000)
SSE_CONNECT_TIMEOUT_MS = _env_ms("MCP_SSE_CONNECT_TIMEOUT_MS", 8_000)
CONNECT_BUDGET_MS = _env_ms("MCP_CONNECT_BUDGET_MS", 10_000)

USER_AGENT = os.getenv("MCP_USER_AGENT", "toolbridge/0.1.0")
HTTP_ACCEPT = "application/json, text/event-stream"
