"""Ordered, path-deduplicating buffer of pending changes.

Producers (startup reconciliation, the file watcher, directory-add requests)
enqueue from any thread or task; the single indexing worker polls. The queue
holds at most one record per path. Re-enqueueing a path replaces its record
and moves it to the back, so processing order follows the latest event.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from similo.index.models import ChangeReason, ChangeRecord, SyncAnalysis
from similo.index.store import is_under

if TYPE_CHECKING:
    from similo.files.reader import FileReader

logger = structlog.get_logger()


class ChangeQueue:
    """Thread-safe FIFO keyed by path."""

    def __init__(self, reader: FileReader) -> None:
        self.reader = reader
        self._items: OrderedDict[str, ChangeRecord] = OrderedDict()
        self._lock = threading.Lock()

    def enqueue(self, change: ChangeRecord) -> None:
        with self._lock:
            self._put(change)
        logger.debug("change_enqueued", path=change.path, reason=change.reason.value)

    def enqueue_many(self, changes: Iterable[ChangeRecord]) -> int:
        """Enqueue a batch atomically. Returns the number of records written."""
        count = 0
        with self._lock:
            for change in changes:
                self._put(change)
                count += 1
        return count

    def enqueue_directory(self, root: str) -> int:
        """Queue every eligible file under root as ``new``. Returns the count."""
        changes: list[ChangeRecord] = []
        for path in self.reader.scan_directory(root):
            stat = self.reader.stat(path)
            if stat is not None:
                changes.append(ChangeRecord(path=path, reason=ChangeReason.NEW, mtime=stat.mtime))
        count = self.enqueue_many(changes)
        logger.info("directory_enqueued", root=root, count=count)
        return count

    def enqueue_analysis(self, analysis: SyncAnalysis) -> int:
        """Queue a reconciliation result: adds, then updates, then removals."""
        changes = [ChangeRecord(path=p, reason=ChangeReason.NEW) for p in analysis.to_add]
        changes += [ChangeRecord(path=p, reason=ChangeReason.MODIFIED) for p in analysis.to_update]
        changes += [ChangeRecord(path=p, reason=ChangeReason.DELETED) for p in analysis.to_remove]
        return self.enqueue_many(changes)

    def poll(self, max_count: int = 1) -> list[ChangeRecord]:
        """Remove and return up to max_count of the oldest records."""
        polled: list[ChangeRecord] = []
        with self._lock:
            while self._items and len(polled) < max_count:
                _, change = self._items.popitem(last=False)
                polled.append(change)
        return polled

    def discard_under(self, root: str) -> int:
        """Drop pending records at or below root. Returns the number dropped."""
        with self._lock:
            doomed = [path for path in self._items if is_under(path, root)]
            for path in doomed:
                del self._items[path]
        return len(doomed)

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        return self.size()

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def _put(self, change: ChangeRecord) -> None:
        self._items.pop(change.path, None)
        self._items[change.path] = change
