"""MCP access to the ibah knowledge service"""
from .ibah_client import IbahMCPClient, configured_connections

__all__ = ["IbahMCPClient", "configured_connections"]
