"""Filesystem reconciliation for change detection.

The Reconciler diffs the current state of the registered roots against the
indexed state and partitions paths into add / update / remove. Every path
lands in exactly one list:

- indexed and no longer present under any root -> remove
- indexed, present, and newer on disk -> update
- present and not indexed -> add

Eligibility is delegated to FileReader; the reconciler never re-implements it.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from similo.index.models import SyncAnalysis

if TYPE_CHECKING:
    from similo.files.reader import FileReader
    from similo.index.store import VectorStore

logger = structlog.get_logger()


class Reconciler:
    """Computes the sync work needed to bring the index up to date."""

    def __init__(self, store: VectorStore, reader: FileReader) -> None:
        self.store = store
        self.reader = reader

    def scan(self, roots: Iterable[str]) -> dict[str, float]:
        """Current eligible files under roots mapped to their mtimes."""
        current: dict[str, float] = {}
        for root in roots:
            for path in self.reader.scan_directory(root):
                file_stat = self.reader.stat(path)
                if file_stat is not None:
                    current[path] = file_stat.mtime
        return current

    def reconcile(self, roots: Iterable[str]) -> SyncAnalysis:
        start = time.perf_counter()
        roots = list(roots)
        current = self.scan(roots)
        indexed = self.store.list_modified_times()

        analysis = SyncAnalysis()
        for path, stored_mtime in indexed.items():
            current_mtime = current.get(path)
            if current_mtime is None:
                analysis.to_remove.append(path)
            elif current_mtime > stored_mtime:
                analysis.to_update.append(path)

        analysis.to_add.extend(path for path in current if path not in indexed)

        analysis.to_add.sort()
        analysis.to_update.sort()
        analysis.to_remove.sort()

        logger.info(
            "reconcile_complete",
            roots=len(roots),
            files_checked=len(current),
            to_add=len(analysis.to_add),
            to_update=len(analysis.to_update),
            to_remove=len(analysis.to_remove),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return analysis
