"""Daemon lifecycle management."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import time
from dataclasses import dataclass, field

import structlog
import uvicorn

from similo.config.loader import SimiloPaths
from similo.config.models import SimiloConfig
from similo.daemon.watcher import FileWatcher
from similo.daemon.worker import IndexingWorker
from similo.directories.ops import DirectoryOps
from similo.embedding.base import EmbeddingProvider
from similo.embedding.ollama import OllamaEmbeddingProvider
from similo.files.reader import FileReader
from similo.index._internal.db import Database
from similo.index.ops import IndexCoordinator
from similo.index.queue import ChangeQueue
from similo.index.registry import DirectoryRegistry
from similo.index.store import VectorStore

logger = structlog.get_logger()


@dataclass
class ServerController:
    """
    Orchestrates daemon components.

    Components:
    - IndexCoordinator: read -> embed -> store pipeline and queries
    - DirectoryOps: registry mutations requested over HTTP or MCP
    - IndexingWorker: single consumer of the change queue
    - FileWatcher: async filesystem monitoring feeding the queue

    Startup is split in two: ``prepare()`` runs the blocking startup
    sequence (probe, schema, embedding-space governance, reconciliation);
    ``start()`` launches the watcher and worker on the running loop.
    """

    config: SimiloConfig
    paths: SimiloPaths
    db: Database
    coordinator: IndexCoordinator

    directories: DirectoryOps = field(init=False)
    worker: IndexingWorker = field(init=False)
    watcher: FileWatcher = field(init=False)
    started_at: float = field(default_factory=time.time, init=False)
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _stop_requested: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def __post_init__(self) -> None:
        self.worker = IndexingWorker(
            coordinator=self.coordinator,
            idle_poll_sec=self.config.worker.idle_poll_sec,
        )
        self.watcher = FileWatcher(
            roots=self.registered_roots,
            reader=self.coordinator.reader,
            queue=self.coordinator.queue,
            indexed_under=self.coordinator.store.paths_under,
            debounce_sec=self.config.server.debounce_sec,
        )
        self.directories = DirectoryOps(
            coordinator=self.coordinator,
            on_roots_changed=self.watcher.refresh,
        )

    @property
    def provider(self) -> EmbeddingProvider:
        return self.coordinator.provider

    def registered_roots(self) -> list[str]:
        return [d.path for d in self.coordinator.registry.find_all()]

    def prepare(self) -> None:
        """Run the blocking startup sequence.

        Raises:
            EmbeddingError: the embedding provider cannot be reached or the
                model is missing. The daemon must not start in that case.
        """
        dimensions = self.provider.probe()
        logger.info(
            "embedding_provider_ready", model=self.provider.model_name, dimensions=dimensions
        )

        self.db.create_all()
        decision = self.coordinator.ensure_embedding_space()
        if decision.was_reset:
            logger.warning(
                "embedding_space_reset",
                action=decision.action.value,
                previous_model=decision.previous_model,
                previous_dimensions=decision.previous_dimensions,
            )
        self.coordinator.sync_registered_directories()

    async def start(self) -> None:
        """Start all daemon components."""
        logger.info("server starting", home=str(self.paths.home))

        # Watcher first so events during the initial drain are not lost
        await self.watcher.start()
        self.worker.start()

        base_url = f"http://{self.config.server.host}:{self.config.server.port}"
        logger.info("server started")
        logger.info("endpoint", name="mcp", url=f"{base_url}/mcp")
        logger.info("endpoint", name="health", url=f"{base_url}/health")
        logger.info("endpoint", name="status", url=f"{base_url}/status")

    async def stop(self) -> None:
        """Stop all daemon components gracefully."""
        logger.info("server stopping")

        timeout = self.config.server.shutdown_timeout_sec
        try:
            async with asyncio.timeout(timeout):
                # Stop watcher first (no new events)
                await self.watcher.stop()

                # Stop worker (in-flight item finishes)
                await self.worker.stop()
        except TimeoutError:
            logger.warning(
                "server_stop_timeout",
                message=f"Shutdown timed out after {timeout}s",
            )

        self.provider.close()
        self.db.close()

        # Signal shutdown complete
        self._shutdown_event.set()

        logger.info("server stopped")

    def request_stop(self) -> None:
        """Ask the serving loop to exit; used by ``POST /stop``."""
        self._stop_requested.set()

    @property
    def stop_requested(self) -> asyncio.Event:
        return self._stop_requested

    def wait_for_shutdown(self) -> asyncio.Event:
        """Get the shutdown event for external coordination."""
        return self._shutdown_event

    def status(self) -> dict[str, object]:
        """Snapshot used by ``GET /status`` and the status tool."""
        return {
            "status": "running",
            "port": self.config.server.port,
            "directories": len(self.coordinator.registry.find_all()),
            "indexed_files": self.coordinator.store.count(),
            "queued_files": self.coordinator.queue_size(),
            "model": self.provider.model_name,
            "dimensions": self.provider.dimensions,
            "uptime_seconds": round(time.time() - self.started_at, 1),
            "worker": self.worker.status.to_dict(),
            "watcher": {
                "running": self.watcher.running,
                "roots": self.watcher.watched_roots,
            },
        }


def build_controller(
    config: SimiloConfig,
    paths: SimiloPaths,
    *,
    provider: EmbeddingProvider | None = None,
) -> ServerController:
    """Wire every component from configuration."""
    db = Database(paths.db_path)
    store = VectorStore(db, overfetch_factor=config.search.overfetch_factor)
    registry = DirectoryRegistry(db)
    reader = FileReader(
        extensions=config.indexing.extensions,
        ignore_patterns=config.indexing.ignore_patterns,
        max_file_size=config.indexing.max_file_size,
    )
    if provider is None:
        provider = OllamaEmbeddingProvider(
            host=config.ollama.host,
            model=config.ollama.model,
            timeout=config.ollama.timeout_sec,
        )
    queue = ChangeQueue(reader)
    coordinator = IndexCoordinator(
        db,
        store,
        registry,
        reader,
        provider,
        queue,
        default_limit=config.search.default_limit,
    )
    return ServerController(config=config, paths=paths, db=db, coordinator=coordinator)


def write_pid_file(paths: SimiloPaths, port: int) -> None:
    """Write PID and port files for daemon discovery."""
    paths.home.mkdir(parents=True, exist_ok=True)
    paths.pid_file.write_text(str(os.getpid()))
    paths.port_file.write_text(str(port))

    logger.debug("pid_file_written", pid_path=str(paths.pid_file), port=port)


def remove_pid_file(paths: SimiloPaths) -> None:
    """Remove PID and port files on shutdown."""
    for path in (paths.pid_file, paths.port_file):
        with contextlib.suppress(FileNotFoundError):
            path.unlink()


def read_server_info(paths: SimiloPaths) -> tuple[int, int] | None:
    """Read daemon PID and port from files. Returns (pid, port) or None."""
    try:
        pid = int(paths.pid_file.read_text().strip())
        port = int(paths.port_file.read_text().strip())
        return (pid, port)
    except (FileNotFoundError, ValueError):
        return None


def is_server_running(paths: SimiloPaths) -> bool:
    """Check if daemon is running by verifying PID file and process."""
    info = read_server_info(paths)
    if info is None:
        return False

    pid, _ = info

    # Check if process exists
    try:
        os.kill(pid, 0)
        return True
    except (OSError, ProcessLookupError):
        # Process doesn't exist - clean up stale files
        remove_pid_file(paths)
        return False


async def run_server(config: SimiloConfig, paths: SimiloPaths) -> None:
    """Run the daemon until shutdown signal or ``POST /stop``."""
    from similo.daemon.app import create_app

    controller = build_controller(config, paths)
    try:
        await asyncio.to_thread(controller.prepare)
    except BaseException:
        controller.provider.close()
        controller.db.close()
        raise

    app = create_app(controller)

    # Configure uvicorn
    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",  # Use structlog instead
        ws="none",  # MCP runs over streamable HTTP
    )
    server = uvicorn.Server(uvicorn_config)

    write_pid_file(paths, config.server.port)

    # Setup signal handlers with force exit on second signal
    loop = asyncio.get_running_loop()
    shutdown_count = 0

    def signal_handler() -> None:
        nonlocal shutdown_count
        shutdown_count += 1
        logger.info("shutdown_signal_received", count=shutdown_count)
        server.should_exit = True
        if shutdown_count > 1:
            # Second signal - force immediate exit
            server.force_exit = True

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    async def exit_on_stop_request() -> None:
        await controller.stop_requested.wait()
        logger.info("stop_requested")
        server.should_exit = True

    stop_watch = loop.create_task(exit_on_stop_request())
    try:
        await controller.start()
        await server.serve()
    finally:
        stop_watch.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await stop_watch
        await controller.stop()
        remove_pid_file(paths)


def stop_daemon(paths: SimiloPaths) -> bool:
    """Stop a running daemon by sending SIGTERM. Returns True if signalled."""
    info = read_server_info(paths)
    if info is None:
        return False

    pid, _ = info

    try:
        os.kill(pid, signal.SIGTERM)
        logger.info("daemon_stop_signal_sent", pid=pid)
        return True
    except (OSError, ProcessLookupError):
        remove_pid_file(paths)
        return False
