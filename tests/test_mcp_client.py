import json

import pytest

import core.mcp.ibah_client as ibah_client
from core.mcp import IbahMCPClient, configured_connections
from core.settings import Settings


def test_connections_fall_back_to_rendered_entry(settings: Settings):
    connections = configured_connections(settings)
    assert connections == {
        "ibah": {
            "transport": "stdio",
            "command": "bun",
            "args": ["run", str(settings.mcp_entrypoint)],
            "env": {"IBAH_SERVER_URL": "http://localhost:3100", "IBAH_API_KEY": "dev-local-key"},
        }
    }


def test_connections_read_from_mcp_file(settings: Settings):
    settings.buildit_mcp_file.parent.mkdir(parents=True)
    settings.buildit_mcp_file.write_text(json.dumps({
        "mcpServers": {"ibah": {"command": "/opt/bun", "args": ["run", "x.ts"], "env": {"IBAH_API_KEY": "k"}}}
    }))
    connection = configured_connections(settings)["ibah"]
    assert connection["command"] == "/opt/bun"
    assert connection["args"] == ["run", "x.ts"]
    assert connection["env"] == {"IBAH_API_KEY": "k"}


def test_unreadable_mcp_file_ignored(settings: Settings):
    settings.buildit_mcp_file.parent.mkdir(parents=True)
    settings.buildit_mcp_file.write_text("[1, 2")
    assert configured_connections(settings)["ibah"]["command"] == "bun"


@pytest.mark.parametrize(
    "entry",
    ["x", ["bun"], {"args": ["run"]}, {"command": "bun", "args": "run x.ts"}, {"command": "bun", "env": ["K=v"]}],
)
def test_malformed_ibah_entry_falls_back(settings: Settings, entry):
    settings.buildit_mcp_file.parent.mkdir(parents=True)
    settings.buildit_mcp_file.write_text(json.dumps({"mcpServers": {"ibah": entry}}))
    connection = configured_connections(settings)["ibah"]
    assert connection["command"] == "bun"
    assert connection["args"] == ["run", str(settings.mcp_entrypoint)]


class _Tool:
    def __init__(self, name: str):
        self.name = name


class _FakeMultiServerClient:
    instances: list = []

    def __init__(self, connections):
        self.connections = connections
        _FakeMultiServerClient.instances.append(self)

    async def get_tools(self):
        return [_Tool("ibah-search"), _Tool("ibah-query")]


@pytest.mark.asyncio
async def test_list_tool_names_uses_configured_connections(settings: Settings, monkeypatch):
    monkeypatch.setattr(ibah_client, "MultiServerMCPClient", _FakeMultiServerClient)
    client = IbahMCPClient(settings)
    assert await client.list_tool_names() == ["ibah-query", "ibah-search"]
    assert _FakeMultiServerClient.instances[-1].connections["ibah"]["transport"] == "stdio"


@pytest.mark.asyncio
async def test_get_tools_propagates_errors(settings: Settings, monkeypatch):
    class _Failing(_FakeMultiServerClient):
        async def get_tools(self):
            raise ConnectionError("server exited")

    monkeypatch.setattr(ibah_client, "MultiServerMCPClient", _Failing)
    with pytest.raises(ConnectionError):
        await IbahMCPClient(settings).get_tools()
