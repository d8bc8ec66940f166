"""Directory registration tools."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from pydantic import Field

from similo.mcp.registry import ToolName, ToolParams, tool_table

if TYPE_CHECKING:
    from similo.mcp.context import AppContext


class ListDirectoriesParams(ToolParams):
    """similo_list_directories takes no parameters."""


class DirectoryPathParams(ToolParams):
    """Parameters for tools that act on one directory."""

    path: str = Field(min_length=1, description="Directory path; ~ is expanded.")


@tool_table.bind(ToolName.LIST_DIRECTORIES, ListDirectoriesParams)
async def similo_list_directories(ctx: AppContext, params: ListDirectoriesParams) -> dict[str, Any]:
    """List registered directories with their indexed file counts."""
    _ = params  # unused
    infos = await asyncio.to_thread(ctx.directories.list)
    return {
        "directories": [info.to_dict() for info in infos],
        "summary": f"{len(infos)} directories",
    }


@tool_table.bind(ToolName.ADD_DIRECTORY, DirectoryPathParams)
async def similo_add_directory(ctx: AppContext, params: DirectoryPathParams) -> dict[str, Any]:
    """Register a directory for indexing. Its files are queued immediately."""
    result = await asyncio.to_thread(ctx.directories.add, params.path)
    return {
        **result.to_dict(),
        "summary": f"{result.queued_count} files queued from {result.directory.path}",
    }


@tool_table.bind(ToolName.REMOVE_DIRECTORY, DirectoryPathParams)
async def similo_remove_directory(ctx: AppContext, params: DirectoryPathParams) -> dict[str, Any]:
    """Unregister a directory and delete its documents from the index."""
    removed = await asyncio.to_thread(ctx.directories.remove, params.path)
    return {
        "removed_documents": removed,
        "summary": f"{removed} documents removed",
    }
