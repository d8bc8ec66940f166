"""MCP tool handlers. Importing a module binds its handlers to the tool table."""

from similo.mcp.tools import directories, search, status

__all__ = ["directories", "search", "status"]
