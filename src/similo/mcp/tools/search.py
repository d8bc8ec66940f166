"""Semantic search tool."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from pydantic import Field

from similo.config.constants import SEARCH_MAX_LIMIT
from similo.mcp.registry import ToolName, ToolParams, tool_table

if TYPE_CHECKING:
    from similo.mcp.context import AppContext


class SearchParams(ToolParams):
    """Parameters for similo_search."""

    query: str = Field(min_length=1, description="Natural-language query.")
    limit: int | None = Field(
        default=None,
        ge=1,
        le=SEARCH_MAX_LIMIT,
        description="Maximum number of results. Defaults to the daemon's configured limit.",
    )
    path: str | None = Field(
        default=None,
        description="Only return documents at or below this absolute directory path.",
    )
    min_score: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Drop results scoring below this value (score = 1 / (1 + distance)).",
    )


@tool_table.bind(ToolName.SEARCH, SearchParams)
async def similo_search(ctx: AppContext, params: SearchParams) -> dict[str, Any]:
    """Search indexed documents by meaning. Returns paths, content and similarity scores."""
    started = time.perf_counter()
    results = await asyncio.to_thread(
        ctx.coordinator.search_text,
        params.query,
        params.limit,
        params.path,
        params.min_score,
    )
    return {
        "results": [r.to_dict() for r in results],
        "query": params.query,
        "query_time_ms": round((time.perf_counter() - started) * 1000, 1),
        "summary": f"{len(results)} results",
    }
