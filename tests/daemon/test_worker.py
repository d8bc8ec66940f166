"""Tests for daemon/worker.py - the sequential indexing worker."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from similo.core.errors import EmbeddingError
from similo.daemon.worker import IndexingWorker, WorkerState
from similo.index.models import ChangeReason, ChangeRecord
from similo.index.ops import IndexCoordinator
from tests.support import FakeEmbeddingProvider, write_file


async def wait_until_drained(worker: IndexingWorker, timeout: float = 5.0) -> None:
    async with asyncio.timeout(timeout):
        while worker.coordinator.queue_size() or worker.status.state is WorkerState.INDEXING:
            await asyncio.sleep(0.01)


class TestDrainLoop:
    @pytest.mark.asyncio
    async def test_processes_queued_changes(
        self, coordinator: IndexCoordinator, docs_root: Path
    ) -> None:
        a = write_file(docs_root / "a.md", "a")
        b = write_file(docs_root / "b.md", "b")
        coordinator.registry.insert(str(docs_root))
        coordinator.enqueue_directory(str(docs_root))
        worker = IndexingWorker(coordinator, idle_poll_sec=0.01)

        worker.start()
        await wait_until_drained(worker)
        await worker.stop()

        assert coordinator.store.find_by_path(str(a)) is not None
        assert coordinator.store.find_by_path(str(b)) is not None
        assert worker.status.processed == 2
        assert worker.status.state is WorkerState.STOPPED

    @pytest.mark.asyncio
    async def test_failed_item_does_not_stall_pipeline(
        self,
        coordinator: IndexCoordinator,
        fake_provider: FakeEmbeddingProvider,
        docs_root: Path,
    ) -> None:
        """Given a poison file first in line, the files behind it still get indexed."""
        fake_provider.errors["POISON"] = EmbeddingError.connection_failed("http://x", "refused")
        bad = write_file(docs_root / "a.md", "POISON")
        good = write_file(docs_root / "b.md", "fine")
        coordinator.enqueue_change(ChangeRecord(str(bad), ChangeReason.NEW))
        coordinator.enqueue_change(ChangeRecord(str(good), ChangeReason.NEW))
        worker = IndexingWorker(coordinator, idle_poll_sec=0.01)

        worker.start()
        await wait_until_drained(worker)
        await worker.stop()

        assert coordinator.store.find_by_path(str(good)) is not None
        assert coordinator.store.find_by_path(str(bad)) is None
        status = worker.status
        assert status.errors == 1
        assert status.last_error is not None and str(bad) in status.last_error
        # No automatic retry
        assert coordinator.queue_size() == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_counted(self) -> None:
        pending = [ChangeRecord("/x.md", ChangeReason.NEW)]
        coordinator = MagicMock()
        coordinator.poll_changes.side_effect = lambda n: [pending.pop(0)] if pending else []
        coordinator.process_change.side_effect = RuntimeError("disk on fire")
        coordinator.queue_size.return_value = 0
        worker = IndexingWorker(coordinator, idle_poll_sec=0.01)

        worker.start()
        await asyncio.sleep(0.1)
        await worker.stop()

        assert worker.status.errors == 1
        assert "disk on fire" in (worker.status.last_error or "")

    @pytest.mark.asyncio
    async def test_refreshes_directory_stats_after_writes(
        self, coordinator: IndexCoordinator, docs_root: Path
    ) -> None:
        write_file(docs_root / "a.md", "a")
        coordinator.registry.insert(str(docs_root))
        coordinator.enqueue_directory(str(docs_root))
        worker = IndexingWorker(coordinator, idle_poll_sec=0.01)

        worker.start()
        await wait_until_drained(worker)
        await asyncio.sleep(0.05)
        await worker.stop()

        directory = coordinator.registry.find_by_path(str(docs_root))
        assert directory is not None
        assert directory.file_count == 1
        assert directory.last_indexed_at is not None


class TestStop:
    @pytest.mark.asyncio
    async def test_in_flight_item_completes_and_nothing_new_starts(self) -> None:
        """Stop during an item lets it finish but leaves the rest of the queue untouched."""
        started = threading.Event()
        release = threading.Event()
        processed: list[str] = []

        def slow_process(change: ChangeRecord) -> bool:
            started.set()
            release.wait(timeout=5)
            processed.append(change.path)
            return True

        pending = [ChangeRecord("/a.md", ChangeReason.NEW), ChangeRecord("/b.md", ChangeReason.NEW)]
        coordinator = MagicMock()
        coordinator.poll_changes.side_effect = lambda n: [pending.pop(0)] if pending else []
        coordinator.process_change.side_effect = slow_process
        coordinator.queue_size.side_effect = lambda: len(pending)
        worker = IndexingWorker(coordinator, idle_poll_sec=0.01)

        worker.start()
        await asyncio.to_thread(started.wait, 5)
        stop_task = asyncio.create_task(worker.stop())
        await asyncio.sleep(0.05)
        release.set()
        await stop_task

        assert processed == ["/a.md"]
        assert [c.path for c in pending] == ["/b.md"]
        assert not worker.running

    @pytest.mark.asyncio
    async def test_stop_when_idle_returns_promptly(self, coordinator: IndexCoordinator) -> None:
        worker = IndexingWorker(coordinator, idle_poll_sec=30.0)
        worker.start()
        await asyncio.sleep(0.01)

        async with asyncio.timeout(2.0):
            await worker.stop()

        assert worker.status.state is WorkerState.STOPPED

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, coordinator: IndexCoordinator) -> None:
        worker = IndexingWorker(coordinator, idle_poll_sec=0.01)
        worker.start()
        task = worker._task
        worker.start()

        assert worker._task is task
        await worker.stop()
