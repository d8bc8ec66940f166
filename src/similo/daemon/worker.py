"""Indexing worker: single consumer draining the change queue."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from similo.core.errors import EmbeddingError

if TYPE_CHECKING:
    from similo.index.models import ChangeRecord
    from similo.index.ops import IndexCoordinator

logger = structlog.get_logger()

T = TypeVar("T")


class WorkerState(Enum):
    """Indexing worker state."""

    IDLE = "idle"
    INDEXING = "indexing"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class WorkerStatus:
    """Current worker status."""

    state: WorkerState
    queue_size: int
    processed: int
    errors: int
    last_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "queue_size": self.queue_size,
            "processed": self.processed,
            "errors": self.errors,
            "last_error": self.last_error,
        }


@dataclass
class IndexingWorker:
    """
    Sequential consumer of the change queue.

    Design:
    - HTTP server and watcher run in the main asyncio loop
    - Each item runs on a single-thread executor (read, embed, write block)
    - One item at a time; the loop yields between items
    - Stop is cooperative: checked before and between items, so an
      in-flight item always finishes
    - Failed items are logged and dropped, never retried
    """

    coordinator: IndexCoordinator
    idle_poll_sec: float = 1.0

    _state: WorkerState = field(default=WorkerState.STOPPED, init=False)
    _executor: ThreadPoolExecutor | None = field(default=None, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _processed: int = field(default=0, init=False)
    _errors: int = field(default=0, init=False)
    _last_error: str | None = field(default=None, init=False)
    _dirty: bool = field(default=False, init=False)

    def start(self) -> None:
        """Start the drain loop as a background task."""
        if self._task is not None:
            return
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="similo-indexer")
        self._stop_event.clear()
        self._state = WorkerState.IDLE
        self._task = asyncio.create_task(self.drain_loop())
        logger.info("indexing_worker_started", idle_poll_sec=self.idle_poll_sec)

    async def stop(self) -> None:
        """Request stop and wait for the in-flight item to finish."""
        self._state = WorkerState.STOPPING
        self._stop_event.set()

        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        self._state = WorkerState.STOPPED
        logger.info("indexing_worker_stopped", processed=self._processed, errors=self._errors)

    async def drain_loop(self) -> None:
        """Poll one change at a time until stopped."""
        loop = asyncio.get_running_loop()
        while not self._stop_event.is_set():
            changes = self.coordinator.poll_changes(1)
            if not changes:
                if self._dirty:
                    self._dirty = False
                    await self._refresh_stats(loop)
                self._state = WorkerState.IDLE
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop_event.wait(), self.idle_poll_sec)
                continue

            self._state = WorkerState.INDEXING
            await self._process(loop, changes[0])
            # Let producers and query handlers run between items
            await asyncio.sleep(0)

    async def _process(self, loop: asyncio.AbstractEventLoop, change: ChangeRecord) -> None:
        logger.debug("change_processing", path=change.path, reason=change.reason.value)
        try:
            wrote = await self._run(loop, self.coordinator.process_change, change)
        except EmbeddingError as e:
            self._errors += 1
            self._last_error = f"{change.path}: {e.message}"
            logger.error(
                "change_failed",
                path=change.path,
                reason=change.reason.value,
                kind=e.kind.value,
                error=e.message,
            )
            return
        except Exception as e:
            self._errors += 1
            self._last_error = f"{change.path}: {e}"
            logger.error(
                "change_failed", path=change.path, reason=change.reason.value, error=str(e)
            )
            logger.debug("change_failed_traceback", path=change.path, exc_info=True)
            return

        self._processed += 1
        if wrote:
            self._dirty = True

    async def _refresh_stats(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            await self._run(loop, self.coordinator.refresh_directory_stats)
        except Exception as e:
            logger.error("directory_stats_refresh_failed", error=str(e))

    async def _run(
        self,
        loop: asyncio.AbstractEventLoop,
        fn: Callable[..., T],
        *args: Any,
    ) -> T:
        return await loop.run_in_executor(self._executor, fn, *args)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def status(self) -> WorkerStatus:
        return WorkerStatus(
            state=self._state,
            queue_size=self.coordinator.queue_size(),
            processed=self._processed,
            errors=self._errors,
            last_error=self._last_error,
        )
