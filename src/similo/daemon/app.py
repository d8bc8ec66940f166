"""Starlette application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.routing import BaseRoute, Mount

from similo.daemon.routes import create_routes, handle_unexpected

if TYPE_CHECKING:
    from similo.daemon.lifecycle import ServerController


def create_app(controller: ServerController, *, with_mcp: bool = True) -> Starlette:
    """Create the Starlette application with the MCP server mounted at /mcp."""
    routes: list[BaseRoute] = list(create_routes(controller))

    if not with_mcp:
        return Starlette(routes=routes, exception_handlers={Exception: handle_unexpected})

    from similo.mcp.context import AppContext
    from similo.mcp.server import create_mcp_server

    mcp = create_mcp_server(AppContext.from_controller(controller))
    mcp_app = mcp.http_app(path="/mcp", transport="streamable-http")
    routes.append(Mount("/", app=mcp_app))

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        # Controller start/stop is handled in run_server so it runs even
        # if the lifespan exit times out on stuck MCP streams
        async with mcp_app.lifespan(app):
            yield

    return Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={Exception: handle_unexpected},
    )
