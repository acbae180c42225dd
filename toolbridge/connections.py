import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from . import settings
from .clients import MCPConnection, open_connection
from .config import ServerConfig
from .enrichment import IdEnricher
from .lifecycle import LifecycleCoordinator
from .tools.adapter import adapt_tool
from .tools.metrics import TOOL_METRICS, ToolMetrics
from .tools.registry import Tool, ToolRegistry

logger = logging.getLogger(__name__)

Connector = Callable[[ServerConfig], MCPConnection]


@dataclass
class ToolDescriptor:
    """A tool as listed by a server, bound to the connection that can call it."""

    name: str
    description: str
    parameters: Any
    call: Callable[[Dict[str, Any]], Any]


@dataclass
class ServerTools:
    config: ServerConfig
    tools: Dict[str, Tool]


@dataclass
class MCPConnections:
    registry: ToolRegistry
    coordinator: LifecycleCoordinator
    enricher: IdEnricher = field(default_factory=IdEnricher)
    # Every distinct server attempted, by `ServerConfig.key`; the other maps share these keys.
    servers: Dict[str, ServerConfig] = field(default_factory=dict)
    tools_by_server: Dict[str, ServerTools] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def tools(self) -> ToolRegistry:
        return self.registry

    @property
    def handles(self) -> List[Any]:
        return self.coordinator.handles

    async def teardown(self) -> bool:
        return await self.coordinator.teardown()


def dedupe_configs(configs: Iterable[ServerConfig]) -> List[ServerConfig]:
    """Keep the first config for each identity, preserving order."""
    unique: List[ServerConfig] = []
    seen = set()
    for config in configs:
        if config.identity in seen:
            logger.debug("Skipping duplicate MCP server %s", config.label)
            continue
        seen.add(config.identity)
        unique.append(config)
    return unique


def _descriptors_from_listing(connection: MCPConnection, listed: Iterable[Any]) -> List[ToolDescriptor]:
    descriptors: List[ToolDescriptor] = []
    for tool in listed:
        name = getattr(tool, "name", None)
        if not name:
            logger.warning("Skipping unnamed tool from %s: %r", connection.config.label, tool)
            continue
        descriptors.append(
            ToolDescriptor(
                name=name,
                description=getattr(tool, "description", "") or "",
                parameters=getattr(tool, "inputSchema", None),
                call=functools.partial(connection.call_tool, name),
            )
        )
    return descriptors


async def _open_and_list(connection: MCPConnection) -> List[ToolDescriptor]:
    await connection.connect()
    listed = await connection.list_tools()
    return _descriptors_from_listing(connection, listed)


async def _load_server(
    config: ServerConfig,
    *,
    connector: Connector,
    coordinator: LifecycleCoordinator,
    errors: Dict[str, str],
    metrics: Optional[ToolMetrics],
    enricher: IdEnricher,
) -> Optional[Dict[str, Tool]]:
    timeout_ms = config.connect_timeout_ms
    try:
        connection = connector(config)
    except Exception as exc:
        logger.warning("Could not create MCP client for %s: %s", config.label, exc)
        errors[config.key] = str(exc) or type(exc).__name__
        return None

    try:
        descriptors = await asyncio.wait_for(_open_and_list(connection), timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        await connection.close()
        raise
    except Exception as exc:
        message = str(exc) or type(exc).__name__
        if isinstance(exc, asyncio.TimeoutError):
            message = f"MCP connect timeout after {timeout_ms}ms: {config.url}"
        logger.warning("Failed to load tools from MCP server %s: %s", config.label, message)
        errors[config.key] = message
        await connection.close()
        return None

    if not await coordinator.adopt(connection):
        errors[config.key] = "Connection torn down before tools were registered"
        return None

    source = f"mcp:{config.label}"
    tools: Dict[str, Tool] = {}
    for descriptor in descriptors:
        tools[descriptor.name] = adapt_tool(
            descriptor.name,
            descriptor,
            source=source,
            timeout_ms=config.effective_tool_timeout_ms,
            metrics=metrics,
            enricher=enricher,
        )
    logger.info("Loaded %d tool(s) from %s (%s)", len(tools), config.label, config.transport.value)
    return tools


async def connect_servers(
    configs: Iterable[ServerConfig],
    cancel: Optional[asyncio.Event] = None,
    *,
    connector: Connector = open_connection,
    budget_ms: Optional[int] = None,
    metrics: Optional[ToolMetrics] = TOOL_METRICS,
    enricher: Optional[IdEnricher] = None,
) -> MCPConnections:
    """Connect to every distinct server concurrently and merge their tool catalogs.

    A server that cannot be reached or listed is logged, recorded in
    `errors` and left out; it never fails the whole call. Catalogs are merged
    in config order, so on a name collision the later-listed server wins.
    `errors`, `servers` and `tools_by_server` are keyed by `ServerConfig.key`.

    Tool results are passed through `enricher`, which afterwards only points
    at servers that connected.
    """
    unique = dedupe_configs(configs)
    coordinator = LifecycleCoordinator(cancel)
    connections = MCPConnections(
        registry=ToolRegistry(),
        coordinator=coordinator,
        enricher=enricher if enricher is not None else IdEnricher(),
        servers={config.key: config for config in unique},
    )
    if not unique:
        return connections

    tasks: List[Tuple[ServerConfig, asyncio.Task]] = [
        (
            config,
            asyncio.create_task(
                _load_server(
                    config,
                    connector=connector,
                    coordinator=coordinator,
                    errors=connections.errors,
                    metrics=metrics,
                    enricher=connections.enricher,
                )
            ),
        )
        for config in unique
    ]

    budget = (budget_ms if budget_ms is not None else settings.CONNECT_BUDGET_MS) / 1000
    try:
        _, pending = await asyncio.wait([task for _, task in tasks], timeout=budget)
    except asyncio.CancelledError:
        for _, task in tasks:
            task.cancel()
        await asyncio.gather(*(task for _, task in tasks), return_exceptions=True)
        await coordinator.teardown()
        raise
    if pending:
        logger.warning("MCP connect budget of %.1fs exhausted; abandoning %d server(s)", budget, len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    for config, task in tasks:
        if task.cancelled():
            connections.errors.setdefault(config.key, "MCP connect budget exhausted")
            continue
        tools = task.result()
        if tools is None:
            continue
        connections.registry.merge(tools.values())
        connections.tools_by_server[config.key] = ServerTools(config=config, tools=tools)

    connections.enricher.use_servers(server.config for server in connections.tools_by_server.values())
    return connections


__all__ = [
    "Connector",
    "MCPConnections",
    "ServerTools",
    "ToolDescriptor",
    "connect_servers",
    "dedupe_configs",
]
