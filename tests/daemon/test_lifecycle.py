"""Tests for daemon/lifecycle.py - startup sequence, shutdown and PID files."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from similo.config.loader import SimiloPaths
from similo.config.models import SimiloConfig
from similo.core.errors import EmbeddingError
from similo.daemon.lifecycle import (
    ServerController,
    build_controller,
    is_server_running,
    read_server_info,
    remove_pid_file,
    stop_daemon,
    write_pid_file,
)
from similo.index.models import ChangeReason
from tests.support import FakeEmbeddingProvider, write_file


class TestPrepare:
    def test_probe_failure_is_fatal_before_schema(self, paths: SimiloPaths) -> None:
        provider = FakeEmbeddingProvider()
        provider.errors["test"] = EmbeddingError.model_not_found("fake-model")
        controller = build_controller(SimiloConfig(), paths, provider=provider)

        with pytest.raises(EmbeddingError):
            controller.prepare()

        assert controller.coordinator.spaces.store.vector_dimensions() is None
        controller.db.close()

    def test_initializes_space_and_queues_registered_roots(
        self, paths: SimiloPaths, docs_root: Path
    ) -> None:
        """Given a root registered in a previous run, startup reconciliation queues its files."""
        first = build_controller(SimiloConfig(), paths, provider=FakeEmbeddingProvider())
        first.prepare()
        first.coordinator.registry.insert(str(docs_root))
        first.db.close()
        path = write_file(docs_root / "a.md", "a")

        second = build_controller(SimiloConfig(), paths, provider=FakeEmbeddingProvider())
        second.prepare()

        [change] = second.coordinator.poll_changes(5)
        assert (change.path, change.reason) == (str(path), ChangeReason.NEW)
        space = second.coordinator.spaces.get()
        assert space is not None
        assert space.model_name == "fake-model"
        second.db.close()

    def test_model_change_wipes_index_on_restart(self, paths: SimiloPaths, docs_root: Path) -> None:
        path = write_file(docs_root / "a.md", "a")
        first = build_controller(SimiloConfig(), paths, provider=FakeEmbeddingProvider("model-a"))
        first.prepare()
        first.coordinator.registry.insert(str(docs_root))
        first.coordinator.index_file(str(path))
        first.db.close()

        second = build_controller(SimiloConfig(), paths, provider=FakeEmbeddingProvider("model-b"))
        second.prepare()

        assert second.coordinator.store.count() == 0
        # Root survives and its file is queued again
        assert [c.path for c in second.coordinator.poll_changes(5)] == [str(path)]
        second.db.close()


class TestStartStop:
    @pytest.mark.asyncio
    async def test_start_then_stop_releases_resources(
        self, controller: ServerController, fake_provider: FakeEmbeddingProvider
    ) -> None:
        await controller.start()
        assert controller.worker.running
        assert controller.watcher.running

        await controller.stop()

        assert not controller.worker.running
        assert not controller.watcher.running
        assert fake_provider.closed
        assert controller.wait_for_shutdown().is_set()

    def test_directory_changes_refresh_watcher(
        self, controller: ServerController, docs_root: Path
    ) -> None:
        controller.directories.add(docs_root)

        assert controller.watcher._restart_event.is_set()

    def test_status_snapshot(self, controller: ServerController) -> None:
        status = controller.status()

        assert status["model"] == "fake-model"
        assert status["dimensions"] == 8
        assert status["port"] == 11435


class TestPidFiles:
    def test_write_read_remove(self, paths: SimiloPaths) -> None:
        write_pid_file(paths, 12345)

        assert read_server_info(paths) == (os.getpid(), 12345)
        assert is_server_running(paths)

        remove_pid_file(paths)
        assert read_server_info(paths) is None

    def test_stale_pid_is_cleaned_up(self, paths: SimiloPaths) -> None:
        paths.home.mkdir(parents=True, exist_ok=True)
        paths.pid_file.write_text("999999999")
        paths.port_file.write_text("11435")

        with patch("similo.daemon.lifecycle.os.kill", side_effect=ProcessLookupError):
            assert not is_server_running(paths)

        assert not paths.pid_file.exists()

    def test_garbage_pid_file_reads_as_none(self, paths: SimiloPaths) -> None:
        paths.home.mkdir(parents=True, exist_ok=True)
        paths.pid_file.write_text("not-a-pid")
        paths.port_file.write_text("11435")

        assert read_server_info(paths) is None

    def test_stop_daemon_sends_sigterm(self, paths: SimiloPaths) -> None:
        write_pid_file(paths, 11435)

        with patch("similo.daemon.lifecycle.os.kill") as kill:
            assert stop_daemon(paths) is True

        kill.assert_called_once()
        assert kill.call_args.args[0] == os.getpid()

    def test_stop_daemon_without_pid_file(self, paths: SimiloPaths) -> None:
        assert stop_daemon(paths) is False
