import json

from toolbridge import __main__ as cli
from toolbridge.connections import connect_servers as real_connect_servers


class DeadServer:
    def __init__(self, config) -> None:
        self.config = config

    async def connect(self) -> None:
        raise ConnectionError("connect ECONNREFUSED 127.0.0.1:9")

    async def close(self) -> None:
        pass


def test_cli_reports_unreachable_servers(tmp_path, monkeypatch, capsys) -> None:
    path = tmp_path / "mcp.toml"
    path.write_text(
        '[mcp]\nservers = [{ name = "local", url = "http://127.0.0.1:9/mcp" }]\n',
        encoding="utf-8",
    )

    async def fake_connect(configs, cancel=None, **kwargs):
        return await real_connect_servers(configs, cancel, connector=DeadServer, metrics=None)

    monkeypatch.setattr(cli, "connect_servers", fake_connect)

    cli.run(["--config", str(path)])

    report = json.loads(capsys.readouterr().out)
    assert report["servers"] == 1
    assert report["connected"] == 0
    assert report["tools"] == []
    (failure,) = report["errors"]
    assert failure["server"] == "local"
    assert failure["category"] == "network"
    assert failure["message"].startswith("Could not connect to the tool server")
