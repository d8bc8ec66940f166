"""File watcher using watchfiles for async filesystem monitoring.

Design:
- Watches every registered root recursively with ``awatch``
- Restarts the watch set when roots are added or removed (``refresh()``)
- Filters events through FileReader (extension, ignore globs, size)
- Expands directory-level events into per-file changes
- Publishes ChangeRecords onto the ChangeQueue; it never indexes directly
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from watchfiles import Change, awatch

from similo.index.models import ChangeReason, ChangeRecord

if TYPE_CHECKING:
    from similo.files.reader import FileReader
    from similo.index.queue import ChangeQueue

logger = structlog.get_logger()

_REASONS: dict[Change, ChangeReason] = {
    Change.added: ChangeReason.NEW,
    Change.modified: ChangeReason.MODIFIED,
    Change.deleted: ChangeReason.DELETED,
}


@dataclass
class FileWatcher:
    """
    Async watcher over the registered roots.

    ``roots`` is called every time the watch set is (re)built, so the
    registry stays the single source of truth for what is watched.
    ``indexed_under`` lists the indexed paths at or below a path.
    """

    roots: Callable[[], list[str]]
    reader: FileReader
    queue: ChangeQueue
    indexed_under: Callable[[str], list[str]]
    debounce_sec: float = 0.5

    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _restart_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _watched: list[str] = field(default_factory=list, init=False)

    async def start(self) -> None:
        """Start watching for file changes."""
        if self._watch_task is not None:
            return
        self._stop_event.clear()
        self._restart_event.clear()
        self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info("file_watcher_started", debounce_sec=self.debounce_sec)

    async def stop(self) -> None:
        """Stop watching for file changes."""
        self._stop_event.set()
        self._restart_event.set()

        if self._watch_task is not None:
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._watch_task, timeout=2.0)
            if not self._watch_task.done():
                self._watch_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._watch_task
            self._watch_task = None

        logger.info("file_watcher_stopped")

    def refresh(self) -> None:
        """Rebuild the watch set from ``roots()`` on the next loop iteration."""
        self._restart_event.set()

    @property
    def running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    @property
    def watched_roots(self) -> list[str]:
        return list(self._watched)

    async def _watch_loop(self) -> None:
        while not self._stop_event.is_set():
            self._restart_event.clear()
            self._watched = [r for r in self.roots() if Path(r).is_dir()]

            if not self._watched:
                logger.debug("no_watchable_roots")
                await self._restart_event.wait()
                continue

            logger.info("watch_roots_collected", count=len(self._watched))
            try:
                async for changes in awatch(
                    *self._watched,
                    stop_event=self._restart_event,
                    debounce=int(self.debounce_sec * 1000),
                    ignore_permission_denied=True,
                ):
                    self.handle_changes(changes)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._stop_event.is_set():
                    return
                logger.error("watcher_error", error=str(e))
                # Brief backoff before retry
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop_event.wait(), 1.0)

    def handle_changes(self, changes: set[tuple[Change, str]]) -> int:
        """Translate a batch of raw events into queued changes. Returns the count.

        A directory moved in or out of a root arrives as a single event for
        the directory itself: an added directory queues every eligible file
        below it, a deleted one queues a deletion for every indexed document
        below it.
        """
        published = 0
        for change_type, path_str in sorted(changes, key=lambda c: c[1]):
            if change_type is Change.added and Path(path_str).is_dir():
                published += self.queue.enqueue_directory(path_str)
                continue
            records = self._to_records(change_type, path_str)
            for record in records:
                self.queue.enqueue(record)
            published += len(records)
        if published:
            logger.info("changes_detected", count=published)
        return published

    def _to_records(self, change_type: Change, path_str: str) -> list[ChangeRecord]:
        reason = _REASONS.get(change_type)
        if reason is None:
            return []

        if reason is ChangeReason.DELETED:
            if self.reader.is_supported(path_str):
                return [ChangeRecord(path=path_str, reason=reason)]
            below = self.indexed_under(path_str)
            if below:
                logger.debug("directory_deleted", path=path_str, documents=len(below))
            return [ChangeRecord(path=p, reason=reason) for p in below]

        file_stat = self.reader.stat(path_str)
        if file_stat is None:
            logger.debug("path_ignored", path=path_str)
            return []
        return [ChangeRecord(path=path_str, reason=reason, mtime=file_stat.mtime)]
