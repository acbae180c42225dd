import argparse
import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .config import load_mcp_config, server_configs_from_config
from .connections import connect_servers
from .errors import classify, format_error_for_user

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def inspect_servers(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Connect to every configured server, summarize what was loaded and disconnect."""
    configs = server_configs_from_config(load_mcp_config(config_path))
    connections = await connect_servers(configs)
    try:
        failures: List[Dict[str, Any]] = []
        for key, message in connections.errors.items():
            enhanced = classify(message)
            failures.append(
                {
                    "server": connections.servers[key].label,
                    "key": key,
                    "category": enhanced.category.value,
                    "recoverable": enhanced.recoverable,
                    "message": format_error_for_user(enhanced),
                    "raw": message,
                }
            )
        return {
            "servers": len(configs),
            "connected": len(connections.handles),
            "tools": connections.registry.summary(),
            "errors": failures,
        }
    finally:
        await connections.teardown()


def run(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="toolbridge", description="Inspect configured MCP tool servers.")
    parser.add_argument("--config", help="Path to the MCP TOML config (defaults to MCP_CONFIG_FILE)")
    args = parser.parse_args(argv)

    report = asyncio.run(inspect_servers(args.config))
    logger.info("Loaded %d tool(s) from %d/%d server(s)", len(report["tools"]), report["connected"], report["servers"])
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    run()
