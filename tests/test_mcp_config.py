import pytest

from toolbridge.config import (
    IdCapabilities,
    ServerConfig,
    TransportKind,
    load_mcp_config,
    normalize_url,
    server_configs_from_config,
)


def test_server_configs_shorthand_url() -> None:
    config = {"servers": [{"name": "one", "url": "https://example.com/mcp"}]}
    assert server_configs_from_config(config) == [
        ServerConfig(url="https://example.com/mcp", transport=TransportKind.HTTP, name="one")
    ]


def test_server_configs_full_config() -> None:
    config = {
        "servers": [
            {
                "name": "search",
                "type": "sse",
                "url": " https://example.com/sse ",
                "tool_timeout_ms": 45000,
                "headers": [
                    {"key": "Authorization", "value": "Bearer abc"},
                    {"key": "", "value": "dropped"},
                    {"key": "X-Empty"},
                ],
            }
        ]
    }

    (server,) = server_configs_from_config(config)
    assert server.url == "https://example.com/sse"
    assert server.transport is TransportKind.SSE
    assert server.tool_timeout_ms == 45000
    assert server.headers == (("Authorization", "Bearer abc"), ("X-Empty", ""))


def test_headers_accept_inline_table() -> None:
    server = ServerConfig.from_entry({"url": "https://example.com/mcp", "headers": {"X-Key": "1"}})
    assert server.headers == (("X-Key", "1"),)


@pytest.mark.parametrize("raw_type", [None, "streamable-http", 3, "HTTP"])
def test_transport_defaults_to_http(raw_type) -> None:
    entry = {"url": "https://example.com/mcp"}
    if raw_type is not None:
        entry["type"] = raw_type
    assert ServerConfig.from_entry(entry).transport is TransportKind.HTTP


@pytest.mark.parametrize("url", [None, "", "   ", 42])
def test_url_must_be_non_empty_string(url) -> None:
    with pytest.raises(ValueError):
        ServerConfig.from_entry({"url": url})


def test_servers_must_be_list_of_tables() -> None:
    with pytest.raises(TypeError):
        server_configs_from_config({"servers": {"url": "https://example.com"}})
    with pytest.raises(TypeError):
        server_configs_from_config({"servers": ["https://example.com"]})


def test_no_servers() -> None:
    assert server_configs_from_config({}) == []


def test_identity_ignores_cosmetic_url_differences() -> None:
    a = ServerConfig(url="HTTPS://Example.com:443/mcp/", name="a")
    b = ServerConfig(url="https://example.com/mcp", name="b", headers=(("X", "1"),))
    c = ServerConfig(url="https://example.com/mcp", transport=TransportKind.SSE)

    assert a.identity == b.identity
    assert a.identity != c.identity


def test_normalize_url_keeps_port_and_query() -> None:
    assert normalize_url("http://Host:8080/mcp/?a=1#frag") == "http://host:8080/mcp?a=1"


def test_request_headers_add_defaults_without_overriding() -> None:
    http = ServerConfig(url="https://example.com/mcp", headers=(("Accept", "application/json"),))
    sse = ServerConfig(url="https://example.com/sse", transport=TransportKind.SSE)

    assert http.request_headers()["Accept"] == "application/json"
    assert "User-Agent" in http.request_headers()
    assert "Accept" not in sse.request_headers()


def test_load_mcp_config(tmp_path) -> None:
    path = tmp_path / "mcp.toml"
    path.write_text(
        """
[[mcp.servers]]
name = "time"
url = "http://localhost:8001/mcp"

[[mcp.servers]]
url = "http://localhost:8002/sse"
type = "sse"
"""
    )

    configs = server_configs_from_config(load_mcp_config(path))
    assert [c.label for c in configs] == ["time", "http://localhost:8002/sse"]
    assert configs[1].transport is TransportKind.SSE


def test_load_mcp_config_from_env(tmp_path, monkeypatch) -> None:
    path = tmp_path / "other.toml"
    path.write_text("[other]\nvalue = 1\n")
    monkeypatch.setenv("MCP_CONFIG_FILE", str(path))

    assert load_mcp_config() == {}


def test_id_capabilities_are_parsed() -> None:
    server = ServerConfig.from_entry(
        {
            "name": "UniProt",
            "url": "https://example.com/mcp",
            "id_capabilities": {
                "accepts": ["uniprot_accession", "pdb"],
                "hints": {"uniprot_accession": "Accession such as P04637"},
            },
        }
    )
    assert server.id_capabilities == IdCapabilities(
        accepts=("uniprot_accession", "pdb"),
        hints=(("uniprot_accession", "Accession such as P04637"),),
    )
    assert ServerConfig.from_entry({"url": "https://example.com/mcp"}).id_capabilities is None


def test_key_follows_identity() -> None:
    plain = ServerConfig(url="https://Example.com:443/mcp/", name="a")
    same = ServerConfig(url="https://example.com/mcp", name="b")
    sse = ServerConfig(url="https://example.com/mcp", transport=TransportKind.SSE)

    assert plain.key == same.key == "http+https://example.com/mcp"
    assert sse.key == "sse+https://example.com/mcp"
