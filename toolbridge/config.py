import logging
import os
import tomllib
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from . import settings

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


class TransportKind(str, Enum):
    HTTP = "http"
    SSE = "sse"

    @classmethod
    def parse(cls, value: Any) -> "TransportKind":
        """Resolve a configured transport name, defaulting to streamable HTTP."""
        if isinstance(value, str):
            for kind in cls:
                if kind.value == value.strip().lower():
                    return kind
        return cls.HTTP


def normalize_url(url: str) -> str:
    parts = urllib.parse.urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    netloc = host
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{parts.port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    path = parts.path.rstrip("/")
    return urllib.parse.urlunsplit((scheme, netloc, path, parts.query, ""))


@dataclass(frozen=True)
class IdCapabilities:
    """Identifier types a server accepts and produces, with per-type usage hints."""

    accepts: Tuple[str, ...] = ()
    produces: Tuple[str, ...] = ()
    hints: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_entry(cls, raw: Any) -> Optional["IdCapabilities"]:
        if not raw:
            return None
        if not isinstance(raw, Mapping):
            raise TypeError("mcp.servers 'id_capabilities' must be a table")
        hints = raw.get("hints") or {}
        if not isinstance(hints, Mapping):
            raise TypeError("id_capabilities 'hints' must be a table of id type to hint")
        return cls(
            accepts=_names(raw.get("accepts")),
            produces=_names(raw.get("produces")),
            hints=tuple((str(k), str(v)) for k, v in hints.items()),
        )


def _names(raw: Any) -> Tuple[str, ...]:
    if not raw:
        return ()
    if not isinstance(raw, list):
        raise TypeError("id_capabilities 'accepts' and 'produces' must be lists")
    return tuple(str(item) for item in raw if item)


@dataclass(frozen=True)
class ServerConfig:
    """One tool server endpoint.

    `identity` decides deduplication: two configs pointing at the same
    normalized URL over the same transport share one connection.
    """

    url: str
    transport: TransportKind = TransportKind.HTTP
    headers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    name: Optional[str] = None
    tool_timeout_ms: Optional[int] = None
    id_capabilities: Optional[IdCapabilities] = None

    @property
    def identity(self) -> Tuple[str, TransportKind]:
        return normalize_url(self.url), self.transport

    @property
    def key(self) -> str:
        """String form of `identity`, unique per distinct server."""
        url, transport = self.identity
        return f"{transport.value}+{url}"

    @property
    def label(self) -> str:
        return self.name or self.url

    @property
    def connect_timeout_ms(self) -> int:
        if self.transport is TransportKind.SSE:
            return settings.SSE_CONNECT_TIMEOUT_MS
        return settings.HTTP_CONNECT_TIMEOUT_MS

    @property
    def effective_tool_timeout_ms(self) -> int:
        if isinstance(self.tool_timeout_ms, int) and self.tool_timeout_ms > 0:
            return self.tool_timeout_ms
        return settings.DEFAULT_TOOL_TIMEOUT_MS

    def request_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for key, value in self.headers:
            if key:
                headers[key] = value or ""
        if self.transport is TransportKind.HTTP:
            headers.setdefault("Accept", settings.HTTP_ACCEPT)
        headers.setdefault("User-Agent", settings.USER_AGENT)
        return headers

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "ServerConfig":
        if not isinstance(entry, Mapping):
            raise TypeError(f"mcp.servers entries must be objects, got {type(entry).__name__}")

        url = entry.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ValueError("mcp.servers entry missing non-empty 'url'")

        name = entry.get("name")
        timeout = entry.get("tool_timeout_ms")
        return cls(
            url=url.strip(),
            transport=TransportKind.parse(entry.get("type")),
            headers=_parse_headers(entry.get("headers")),
            name=name.strip() if isinstance(name, str) and name.strip() else None,
            tool_timeout_ms=timeout if isinstance(timeout, int) and not isinstance(timeout, bool) else None,
            id_capabilities=IdCapabilities.from_entry(entry.get("id_capabilities")),
        )


def _parse_headers(raw: Any) -> Tuple[Tuple[str, str], ...]:
    """Accept either a list of {key, value} pairs or a plain table of headers."""
    if not raw:
        return ()
    if isinstance(raw, Mapping):
        return tuple((str(k), str(v)) for k, v in raw.items())
    if not isinstance(raw, list):
        raise TypeError("mcp.servers 'headers' must be a list of {key, value} or a table")

    pairs: List[Tuple[str, str]] = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise TypeError(f"header entries must be objects, got {type(item).__name__}")
        key = item.get("key")
        if not key:
            continue
        value = item.get("value")
        pairs.append((str(key), "" if value is None else str(value)))
    return tuple(pairs)


def load_mcp_config(path: str | Path | None = None) -> Dict[str, Any]:
    """Load the `[mcp]` table from the TOML file named by MCP_CONFIG_FILE."""
    config_path = Path(path or os.getenv("MCP_CONFIG_FILE", "config/mcp.toml"))
    # Let errors propagate if the file is missing or malformed.
    data: Dict[str, Any] = tomllib.loads(config_path.read_text())
    return data.get("mcp") or {}


def server_configs_from_config(config: Dict[str, Any]) -> List[ServerConfig]:
    """
    Parse servers from config.

    Supported shape:
        [[mcp.servers]]
        name = "server_name"
        url = "https://example.com/mcp"
        type = "http"            # or "sse"; anything else falls back to "http"
        tool_timeout_ms = 45000
        headers = [{ key = "Authorization", value = "Bearer ..." }]
        id_capabilities = { accepts = ["pdb"], hints = { pdb = "4-character PDB ID" } }
    """
    servers = config.get("servers")
    if not servers:
        return []
    if not isinstance(servers, list):
        raise TypeError("mcp.servers must be a list (TOML array of tables)")

    configs = [ServerConfig.from_entry(item) for item in servers]
    logger.debug("Parsed %d MCP server configs", len(configs))
    return configs
