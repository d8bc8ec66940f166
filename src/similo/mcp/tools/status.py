"""Daemon status tool."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from similo.mcp.registry import ToolName, ToolParams, tool_table

if TYPE_CHECKING:
    from similo.mcp.context import AppContext


class StatusParams(ToolParams):
    """similo_status takes no parameters."""


@tool_table.bind(ToolName.STATUS, StatusParams)
async def similo_status(ctx: AppContext, params: StatusParams) -> dict[str, Any]:
    """Report indexed and queued file counts, registered directories and the embedding model."""
    _ = params  # unused
    snapshot = await asyncio.to_thread(ctx.status)
    snapshot["summary"] = (
        f"{snapshot['indexed_files']} indexed, {snapshot['queued_files']} queued"
    )
    return snapshot
