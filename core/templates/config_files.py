"""
Generated configuration files.

Fixed templates for the files the setup writes: the project MCP config and
Claude settings for buildit, the Windows-side `.wslconfig` and the Linux-side
`/etc/wsl.conf`.
"""
from __future__ import annotations

import configparser
import io
import json
import logging
from typing import Any, Dict, Optional

from core.settings import Settings

logger = logging.getLogger(__name__)

WSL2_NETWORKING: Dict[str, str] = {
    "networkingMode": "mirrored",
    "dnsTunneling": "true",
    "firewall": "true",
}


def to_json(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2) + "\n"


def mcp_server_entry(settings: Settings) -> Dict[str, Any]:
    return {
        "command": "bun",
        "args": ["run", str(settings.mcp_entrypoint)],
        "env": {
            "IBAH_SERVER_URL": settings.ibah_server_url,
            "IBAH_API_KEY": settings.ibah_api_key,
        },
    }


def render_mcp_config(settings: Settings) -> Dict[str, Any]:
    return {"mcpServers": {settings.mcp_server_name: mcp_server_entry(settings)}}


def merge_mcp_config(existing: Optional[str], settings: Settings) -> Dict[str, Any]:
    """Replace the ibah entry of an existing `.mcp.json`, keeping any other servers."""
    if not existing:
        return render_mcp_config(settings)
    try:
        payload = json.loads(existing)
    except json.JSONDecodeError as e:
        logger.warning("⚠️  Existing MCP config is not valid JSON (%s); replacing it", e)
        return render_mcp_config(settings)
    if not isinstance(payload, dict) or not isinstance(payload.get("mcpServers", {}), dict):
        logger.warning("⚠️  Existing MCP config has an unexpected shape; replacing it")
        return render_mcp_config(settings)

    servers = dict(payload.get("mcpServers", {}))
    servers[settings.mcp_server_name] = mcp_server_entry(settings)
    payload["mcpServers"] = servers
    return payload


def render_claude_settings(settings: Settings) -> Dict[str, Any]:
    return {
        "enableAllProjectMcpServers": True,
        "enabledMcpjsonServers": [settings.mcp_server_name],
    }


def merge_claude_settings(existing: Optional[str], settings: Settings) -> Dict[str, Any]:
    """Enable the ibah server in an existing settings file, keeping unrelated keys."""
    rendered = render_claude_settings(settings)
    if not existing:
        return rendered
    try:
        payload = json.loads(existing)
    except json.JSONDecodeError as e:
        logger.warning("⚠️  Existing Claude settings are not valid JSON (%s); replacing them", e)
        return rendered
    if not isinstance(payload, dict):
        return rendered

    enabled = payload.get("enabledMcpjsonServers")
    if not isinstance(enabled, list):
        enabled = []
    if settings.mcp_server_name not in enabled:
        enabled = [*enabled, settings.mcp_server_name]
    payload["enableAllProjectMcpServers"] = True
    payload["enabledMcpjsonServers"] = enabled
    return payload


def _write_ini(parser: configparser.ConfigParser, space_around_delimiters: bool) -> str:
    buffer = io.StringIO()
    parser.write(buffer, space_around_delimiters=space_around_delimiters)
    return buffer.getvalue().rstrip("\n") + "\n"


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def render_wslconfig(settings: Settings) -> str:
    parser = _new_parser()
    parser["wsl2"] = {
        "memory": settings.wsl_memory,
        "swap": settings.wsl_swap,
        "processors": str(settings.wsl_processors),
        **WSL2_NETWORKING,
    }
    return _write_ini(parser, space_around_delimiters=False)


def render_wslconfig_networking_hint() -> str:
    """The `[wsl2]` networking lines to merge by hand into an existing file."""
    parser = _new_parser()
    parser["wsl2"] = dict(WSL2_NETWORKING)
    return _write_ini(parser, space_around_delimiters=False)


def render_wsl_conf() -> str:
    parser = _new_parser()
    parser["network"] = {"generateResolvConf": "true"}
    parser["boot"] = {"systemd": "true"}
    parser["automount"] = {"options": '"metadata,umask=22,fmask=11"'}
    return _write_ini(parser, space_around_delimiters=True)


def has_mirrored_networking(text: str) -> bool:
    """Whether a `.wslconfig` already selects mirrored networking for WSL2."""
    parser = _new_parser()
    try:
        parser.read_string(text)
    except configparser.Error:
        return "networkingMode=mirrored" in text.replace(" ", "")
    if not parser.has_section("wsl2"):
        return False
    value = parser.get("wsl2", "networkingMode", fallback="")
    return value.strip().lower() == "mirrored"
