"""High-level orchestration of the indexing pipeline.

This module implements the IndexCoordinator - the entry point for all index
operations used by the worker, the HTTP routes and the agent tools.

SERIALIZATION:
- _write_lock: only ONE document write (index, remove or directory removal)
  at a time. The worker is the only per-file writer in practice; directory
  removal arrives from request handlers and takes the same lock.
- index_file reads and embeds outside the lock. A directory removed in
  the meantime is recorded in _removed_roots, and the write is dropped
  once the lock is held.

Searches need no lock; each store write is a single transaction, so a
reader sees either the old document or the new one.

All methods are synchronous. The async worker runs them on its executor.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import structlog

from similo.config.constants import SEARCH_MAX_LIMIT
from similo.core.errors import EmbeddingError, EmbeddingErrorKind, SimiloError
from similo.index.models import (
    ChangeReason,
    ChangeRecord,
    IndexedDocument,
    IndexingResult,
    SearchResult,
    SyncAnalysis,
)
from similo.index.reconcile import Reconciler
from similo.index.store import is_under, normalize_root
from similo.index.versioning import EmbeddingSpaceManager, SpaceDecision

if TYPE_CHECKING:
    from similo.embedding.base import EmbeddingProvider
    from similo.files.reader import FileReader
    from similo.index._internal.db.database import Database
    from similo.index.queue import ChangeQueue
    from similo.index.registry import DirectoryRegistry
    from similo.index.store import VectorStore

logger = structlog.get_logger()


class IndexCoordinator:
    """
    Owns the read -> embed -> store pipeline and the query path.

    Usage::

        coordinator = IndexCoordinator(db, store, registry, reader, provider, queue)
        coordinator.ensure_embedding_space()
        coordinator.sync_registered_directories()

        # Worker side
        for change in coordinator.poll_changes(1):
            coordinator.process_change(change)

        # Query side
        results = coordinator.search_text("how do I deploy", limit=5)
    """

    def __init__(
        self,
        db: Database,
        store: VectorStore,
        registry: DirectoryRegistry,
        reader: FileReader,
        provider: EmbeddingProvider,
        queue: ChangeQueue,
        *,
        default_limit: int = 10,
    ) -> None:
        self.db = db
        self.store = store
        self.registry = registry
        self.reader = reader
        self.provider = provider
        self.queue = queue
        self.default_limit = default_limit

        self.reconciler = Reconciler(store, reader)
        self.spaces = EmbeddingSpaceManager(db, store, registry)

        self._write_lock = threading.Lock()
        self._removed_roots: list[str] = []
        self._removals_at_poll = 0

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def ensure_embedding_space(self) -> SpaceDecision:
        """Run embedding-space governance against the provider's probed space.

        Must run before any index mutation.
        """
        return self.spaces.ensure(self.provider.model_name, self.provider.dimensions)

    def reconcile(self) -> SyncAnalysis:
        """Diff every registered root against the index."""
        roots = [d.path for d in self.registry.find_all()]
        return self.reconciler.reconcile(roots)

    def sync_registered_directories(self) -> SyncAnalysis:
        """Reconcile and enqueue the result (adds, updates, then removals)."""
        analysis = self.reconcile()
        queued = self.queue.enqueue_analysis(analysis)
        logger.info(
            "startup_sync_queued",
            queued=queued,
            to_add=len(analysis.to_add),
            to_update=len(analysis.to_update),
            to_remove=len(analysis.to_remove),
        )
        return analysis

    # ------------------------------------------------------------------
    # Queue facade
    # ------------------------------------------------------------------

    def enqueue_directory(self, path: str) -> int:
        return self.queue.enqueue_directory(path)

    def enqueue_change(self, change: ChangeRecord) -> None:
        self.queue.enqueue(change)

    def poll_changes(self, max_count: int = 1) -> list[ChangeRecord]:
        # Snapshot before polling: a removal after this point sees the item
        # either still queued or in _removed_roots
        self._removals_at_poll = len(self._removed_roots)
        return self.queue.poll(max_count)

    def queue_size(self) -> int:
        return self.queue.size()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def index_file(self, path: str, *, removals_seen: int | None = None) -> bool:
        """Index one file. Returns True iff a write occurred.

        Skips (returns False) for ineligible or unreadable files, files whose
        stored mtime is not older than the file on disk, inputs too long for
        the embedding model, and files whose directory was removed while
        they were being embedded.
        ``removals_seen`` is the removal count observed when the change was
        polled; it defaults to the count at call time.

        Raises:
            EmbeddingError: connection failure, missing model or server error.
            StoreError: the embedding does not match the index dimensionality.
        """
        if removals_seen is None:
            removals_seen = len(self._removed_roots)
        file_content = self.reader.read(path)
        if file_content is None:
            logger.debug("index_skipped_unreadable", path=path)
            return False

        existing = self.store.find_by_path(path)
        if existing is not None and existing.file_modified_at >= file_content.mtime:
            logger.debug("index_skipped_up_to_date", path=path)
            return False

        try:
            embedding = self.provider.embed(file_content.content)
        except EmbeddingError as e:
            if e.kind is EmbeddingErrorKind.CONTEXT_LENGTH_EXCEEDED:
                logger.warning("index_skipped_too_long", path=path, size=file_content.size)
                return False
            logger.error("index_failed", path=path, kind=e.kind.value, error=e.message)
            raise

        doc = IndexedDocument(
            path=path,
            content=file_content.content,
            embedding=embedding,
            indexed_at=time.time(),
            file_modified_at=file_content.mtime,
            file_size=file_content.size,
        )
        with self._write_lock:
            if any(is_under(path, root) for root in self._removed_roots[removals_seen:]):
                logger.info("index_skipped_directory_removed", path=path)
                return False
            existing = self.store.find_by_path(path)
            if existing is not None:
                self.store.update(doc)
            else:
                self.store.insert(doc)

        logger.info("file_indexed", path=path, updated=existing is not None)
        return True

    def remove_file(self, path: str) -> bool:
        """Remove a document and its vector. Returns False for unknown paths."""
        with self._write_lock:
            removed = self.store.delete(path)
        if removed:
            logger.info("file_removed", path=path)
        return removed

    def remove_directory(self, root: str) -> int:
        """Delete every document at or below root and drop its pending changes.

        Runs under the write lock, so no in-flight index_file can commit a
        document under root afterwards. Returns the number of documents removed.
        """
        root = normalize_root(root)
        with self._write_lock:
            self._removed_roots.append(root)
            dropped = self.queue.discard_under(root)
            removed = self.store.delete_by_prefix(root)
        logger.info("directory_documents_removed", root=root, documents=removed, dropped=dropped)
        return removed

    def process_change(self, change: ChangeRecord) -> bool:
        """Apply one queued change. Returns True iff the index was written."""
        if change.reason is ChangeReason.DELETED:
            return self.remove_file(change.path)
        return self.index_file(change.path, removals_seen=self._removals_at_poll)

    def index_directory(self, root: str) -> IndexingResult:
        """Index every eligible file under root and refresh the root's stats.

        Never raises for per-item failures; they are counted as errors.
        """
        root = normalize_root(root)
        result = IndexingResult()
        files = self.reader.scan_directory(root)
        logger.info("directory_indexing_started", root=root, files=len(files))

        for path in files:
            try:
                if self.index_file(path):
                    result.indexed += 1
                else:
                    result.skipped += 1
            except SimiloError as e:
                result.errors += 1
                logger.warning("directory_item_failed", path=path, error_code=int(e.code))
            except Exception as e:
                result.errors += 1
                logger.error("directory_item_failed", path=path, error=str(e))
                logger.debug("directory_item_failed_traceback", path=path, exc_info=True)

        self.registry.update_file_count(root, self.store.count_by_prefix(root))
        self.registry.update_last_indexed_at(root, time.time())

        logger.info("directory_indexing_complete", root=root, **result.to_dict())
        return result

    def reindex_stale_files(self) -> IndexingResult:
        """Run index_directory over every registered root and sum the results."""
        total = IndexingResult()
        for directory in self.registry.find_all():
            total = total + self.index_directory(directory.path)
        return total

    def refresh_directory_stats(self) -> None:
        """Record real document counts and the current time on every registered root.

        Called by the worker once the queue drains after a run of writes.
        """
        now = time.time()
        for directory in self.registry.find_all():
            count = self.store.count_by_prefix(directory.path)
            self.registry.update_file_count(directory.path, count)
            self.registry.update_last_indexed_at(directory.path, now)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search(
        self,
        vector: list[float],
        k: int,
        path_prefix: str | None = None,
    ) -> list[SearchResult]:
        """Nearest documents ordered by descending score, at most k."""
        hits = self.store.find_similar(vector, k, path_prefix)
        return [
            SearchResult(path=hit.document.path, content=hit.document.content, score=hit.score)
            for hit in hits
        ]

    def search_text(
        self,
        query: str,
        limit: int | None = None,
        path: str | None = None,
        min_score: float = 0.0,
    ) -> list[SearchResult]:
        """Embed a query and search.

        Raises:
            EmbeddingError: when the query cannot be embedded.
        """
        k = min(limit if limit is not None else self.default_limit, SEARCH_MAX_LIMIT)
        if k <= 0:
            return []
        prefix = normalize_root(path) if path else None
        vector = self.provider.embed(query)
        results = [r for r in self.search(vector, k, prefix) if r.score >= min_score]
        logger.debug("search_complete", results=len(results), limit=k, path=prefix)
        return results
