"""HTTP routes for the Similo daemon.

Every handler delegates to the controller's components. Blocking calls
(embedding, SQLite) run in a worker thread so the event loop stays free
for the watcher and the indexing worker.
"""

from __future__ import annotations

import importlib.metadata
import json
import time
from typing import TYPE_CHECKING, Any

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from similo.core.errors import (
    DirectoryError,
    EmbeddingError,
    ErrorCode,
    InternalError,
    SimiloError,
)

if TYPE_CHECKING:
    from similo.daemon.lifecycle import ServerController

logger = structlog.get_logger()


def _get_version() -> str:
    """Get package version from installed metadata."""
    try:
        return importlib.metadata.version("similo")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _status_for(error: SimiloError) -> int:
    if isinstance(error, EmbeddingError):
        return 503
    if error.code == ErrorCode.DIRECTORY_NOT_REGISTERED:
        return 404
    if isinstance(error, DirectoryError):
        return 400
    return 500


def error_response(error: SimiloError, status_code: int | None = None) -> JSONResponse:
    """JSON error body: ``{"error": message, "code": ..., ...}``."""
    body = {**error.to_dict(), "error": error.message, "name": error.error_name}
    return JSONResponse(body, status_code=status_code or _status_for(error))


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


def _parse_int(raw: str | None, default: int) -> int | None:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return None


def create_routes(controller: ServerController) -> list[Route]:
    """Create HTTP routes bound to the daemon controller."""
    start_time = time.time()
    version = _get_version()
    coordinator = controller.coordinator
    directories = controller.directories

    async def health(request: Request) -> JSONResponse:
        """Health check endpoint.

        Returns a quick status suitable for liveness probes.
        For detailed diagnostics, use /status instead.
        """
        _ = request  # unused
        return JSONResponse(
            {
                "status": "healthy",
                "version": version,
                "uptime_seconds": round(time.time() - start_time, 1),
            }
        )

    async def status(request: Request) -> JSONResponse:
        _ = request  # unused
        response: dict[str, Any] = await run_in_threadpool(controller.status)
        response["version"] = version
        return JSONResponse(response)

    async def search(request: Request) -> JSONResponse:
        query = request.query_params.get("q", "").strip()
        if not query:
            return _bad_request("Missing query parameter: q")

        limit = _parse_int(request.query_params.get("limit"), coordinator.default_limit)
        if limit is None:
            return _bad_request("Query parameter 'limit' must be an integer")
        path = request.query_params.get("path") or None

        started = time.perf_counter()
        try:
            results = await run_in_threadpool(coordinator.search_text, query, limit, path)
        except SimiloError as e:
            logger.warning("search_failed", error=e.message, code=int(e.code))
            return error_response(e)
        took_ms = round((time.perf_counter() - started) * 1000, 1)

        return JSONResponse(
            {
                "results": [r.to_dict() for r in results],
                "query": query,
                "took_ms": took_ms,
            }
        )

    async def list_directories(request: Request) -> JSONResponse:
        _ = request  # unused
        infos = await run_in_threadpool(directories.list)
        return JSONResponse({"directories": [info.to_dict() for info in infos]})

    async def add_directory(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return _bad_request("Request body must be JSON")
        path = body.get("path") if isinstance(body, dict) else None
        if not path or not isinstance(path, str):
            return _bad_request("Missing path in request body")

        try:
            result = await run_in_threadpool(directories.add, path)
        except SimiloError as e:
            return error_response(e)

        return JSONResponse(result.to_dict(), status_code=201 if result.created else 200)

    async def remove_directory(request: Request) -> JSONResponse:
        path = request.query_params.get("path")
        if not path:
            return _bad_request("Missing query parameter: path")

        try:
            removed = await run_in_threadpool(directories.remove, path)
        except SimiloError as e:
            return error_response(e)

        return JSONResponse({"success": True, "removed_documents": removed})

    async def stop(request: Request) -> JSONResponse:
        _ = request  # unused
        controller.request_stop()
        return JSONResponse({"message": "Server shutting down"})

    return [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/search", search, methods=["GET"]),
        Route("/directories", list_directories, methods=["GET"]),
        Route("/directories", add_directory, methods=["POST"]),
        Route("/directories", remove_directory, methods=["DELETE"]),
        Route("/stop", stop, methods=["POST"]),
    ]


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for errors no route handled."""
    logger.error("request_error", path=request.url.path, error=str(exc))
    return error_response(InternalError.unexpected(str(exc) or type(exc).__name__), 500)
