"""MCP server exposing Similo search and directory tools to agents."""

from similo.mcp.server import ToolResponse, create_mcp_server

__all__ = ["ToolResponse", "create_mcp_server"]
