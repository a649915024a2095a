"""Templates for the configuration files written during setup"""
from .config_files import (
    has_mirrored_networking,
    merge_claude_settings,
    merge_mcp_config,
    render_claude_settings,
    render_mcp_config,
    render_wsl_conf,
    render_wslconfig,
    render_wslconfig_networking_hint,
    to_json,
)

__all__ = [
    "has_mirrored_networking",
    "merge_claude_settings",
    "merge_mcp_config",
    "render_claude_settings",
    "render_mcp_config",
    "render_wsl_conf",
    "render_wslconfig",
    "render_wslconfig_networking_hint",
    "to_json",
]
