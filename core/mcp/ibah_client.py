"""
ibah MCP client using langchain_mcp_adapters

Starts the ibah MCP server the same way Claude Code would (from buildit's
`.mcp.json` when present) and lists the tools it exposes.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from langchain_core.tools.base import BaseTool
from langchain_mcp_adapters.client import MultiServerMCPClient
from langchain_mcp_adapters.sessions import Connection

from core.settings import Settings
from core.templates.config_files import mcp_server_entry
from core.utils.fs import read_text_or_none

logger = logging.getLogger(__name__)


def stdio_connection(entry: Dict[str, Any]) -> Connection:
    return {
        "transport": "stdio",
        "command": entry["command"],
        "args": list(entry.get("args", [])),
        "env": dict(entry.get("env", {})),
    }


def _is_stdio_entry(entry: Any) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("command"), str)
        and isinstance(entry.get("args", []), list)
        and isinstance(entry.get("env", {}), dict)
    )


def configured_connections(settings: Settings) -> Dict[str, Connection]:
    """Read the ibah entry from buildit's `.mcp.json`, falling back to the rendered template."""
    entry: Optional[Dict[str, Any]] = None
    text = read_text_or_none(settings.buildit_mcp_file)
    if text:
        try:
            entry = json.loads(text).get("mcpServers", {}).get(settings.mcp_server_name)
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning("⚠️  Ignoring unreadable %s: %s", settings.buildit_mcp_file, e)
    if entry is not None and not _is_stdio_entry(entry):
        logger.warning(
            "⚠️  Ignoring malformed %s entry in %s", settings.mcp_server_name, settings.buildit_mcp_file
        )
        entry = None
    if not entry:
        entry = mcp_server_entry(settings)
    return {settings.mcp_server_name: stdio_connection(entry)}


class IbahMCPClient:
    """Class to manage the connection to the ibah MCP server."""

    def __init__(self, settings: Settings, connections: Optional[Dict[str, Connection]] = None):
        self.settings = settings
        self.connections: Dict[str, Connection] = connections or configured_connections(settings)
        self.client = self.mcp_client()

    def mcp_client(self) -> MultiServerMCPClient:
        """Create the MCP client for the configured servers."""
        return MultiServerMCPClient(connections=self.connections)

    async def get_tools(self) -> List[BaseTool]:
        """Get all tools from the ibah MCP server."""
        try:
            tools = await self.client.get_tools()
            logger.info(f"✅ Loaded {len(tools)} MCP tools from {self.settings.mcp_server_name}.")
            return tools
        except Exception as e:
            logger.error(f"❌ Failed to load MCP tools: {e}")
            raise e

    async def list_tool_names(self) -> List[str]:
        return sorted(tool.name for tool in await self.get_tools())
