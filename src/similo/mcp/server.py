"""FastMCP server creation and wiring.

Tool logging is two-phase: tool_start with params, tool_complete with a
summary. Expected failures (SimiloError) log a warning without traceback;
anything else logs an error and sends the traceback to DEBUG only.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, Field

from similo.core.errors import SimiloError
from similo.core.logging import clear_request_id, set_request_id

if TYPE_CHECKING:
    from fastmcp import FastMCP

    from similo.mcp.context import AppContext
    from similo.mcp.registry import ToolSpec

log = structlog.get_logger(__name__)


class ToolResponse(BaseModel):
    """Standardized tool response envelope."""

    result: Any = None
    meta: dict[str, Any] = Field(default_factory=dict)
    success: bool
    error: str | None = None


def _extract_log_params(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Key params for the tool_start log, with long values truncated."""
    params: dict[str, Any] = {}
    for key, value in kwargs.items():
        if isinstance(value, str) and len(value) > 50:
            params[key] = value[:50] + "..."
        elif value is not None:
            params[key] = value
    return params


def _extract_result_summary(result: dict[str, Any]) -> dict[str, Any]:
    summary: dict[str, Any] = {}
    if "results" in result and isinstance(result["results"], list):
        summary["results"] = len(result["results"])
    if "directories" in result and isinstance(result["directories"], list):
        summary["directories"] = len(result["directories"])
    if "query_time_ms" in result:
        summary["query_time_ms"] = result["query_time_ms"]
    return summary


def create_mcp_server(context: AppContext) -> FastMCP:
    """Create FastMCP server with all tools wired to context."""
    import fastmcp
    from fastmcp import FastMCP

    from similo.mcp import tools  # noqa: F401  (binds handlers)
    from similo.mcp.registry import tool_table

    # Configure FastMCP global settings for HTTP transport
    fastmcp.settings.stateless_http = True
    fastmcp.settings.json_response = True

    mcp = FastMCP(
        "similo",
        instructions="Similo semantic search over the user's registered local documents.",
    )

    tool_count = 0
    for spec in tool_table.specs():
        _wire_tool(mcp, spec, context)
        tool_count += 1

    log.info("mcp_server_created", tool_count=tool_count)

    return mcp


def make_handler(spec: ToolSpec, context: AppContext) -> Any:
    """Build the kwargs handler FastMCP calls for one tool spec.

    The handler validates kwargs against the params model and always
    returns a ``ToolResponse`` dump, never raises.
    """
    from pydantic import ValidationError

    params_model = spec.params_model

    async def handler(**kwargs: Any) -> dict[str, Any]:
        set_request_id()
        try:
            return await _run(**kwargs)
        finally:
            clear_request_id()

    async def _run(**kwargs: Any) -> dict[str, Any]:
        tool_name = spec.name.value
        start_time = time.perf_counter()
        log.info("tool_start", tool=tool_name, **_extract_log_params(kwargs))

        try:
            params = params_model(**kwargs)
        except ValidationError as e:
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            first = e.errors()[0]["msg"] if e.errors() else str(e)
            log.warning("tool_validation_error", tool=tool_name, error=first, elapsed_ms=elapsed_ms)
            return ToolResponse(
                success=False,
                error=f"Validation error: {first}",
                meta={
                    "error_type": "validation",
                    "validation_errors": [
                        {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
                        for err in e.errors()[:5]
                    ],
                },
            ).model_dump()

        try:
            result_data: dict[str, Any] = await spec.handler(context, params)
        except SimiloError as e:
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            log.warning(
                "tool_error",
                tool=tool_name,
                error_code=int(e.code),
                error=e.message,
                elapsed_ms=elapsed_ms,
            )
            return ToolResponse(
                success=False,
                error=e.message,
                meta={"error": e.to_dict()},
            ).model_dump()
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            log.error("tool_internal_error", tool=tool_name, error=str(e), elapsed_ms=elapsed_ms)
            # Full traceback at DEBUG level (goes to file only per logging config)
            log.debug("tool_internal_error_traceback", tool=tool_name, exc_info=True)
            return ToolResponse(success=False, error=str(e)).model_dump()

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        log.info(
            "tool_complete",
            tool=tool_name,
            elapsed_ms=elapsed_ms,
            **_extract_result_summary(result_data),
        )
        return ToolResponse(
            success=True,
            result=result_data,
            meta={"timestamp": int(time.time() * 1000)},
        ).model_dump()

    return handler


def _wire_tool(mcp: FastMCP, spec: ToolSpec, context: AppContext) -> None:
    """Register one tool with a flat, fully dereferenced parameter schema."""
    from fastmcp.tools.tool import FunctionTool

    tool = FunctionTool(
        name=spec.name.value,
        description=spec.description,
        parameters=spec.input_schema(),
        fn=make_handler(spec, context),
    )
    mcp.add_tool(tool)
