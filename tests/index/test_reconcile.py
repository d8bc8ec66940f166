"""Tests for index/reconcile.py - filesystem vs index diffing."""

from __future__ import annotations

import time
from pathlib import Path

from similo.files.reader import FileReader
from similo.index.models import IndexedDocument
from similo.index.reconcile import Reconciler
from similo.index.store import VectorStore
from tests.support import axis, write_file


def index_path(store: VectorStore, path: Path, mtime: float) -> None:
    store.insert(
        IndexedDocument(
            path=str(path),
            content="x",
            embedding=axis(0),
            indexed_at=time.time(),
            file_modified_at=mtime,
            file_size=1,
        )
    )


class TestReconcile:
    def test_classifies_add_update_remove(
        self, store: VectorStore, reader: FileReader, docs_root: Path
    ) -> None:
        """Given new, stale, fresh and deleted files, each lands in exactly one list."""
        new = write_file(docs_root / "new.md", "n", mtime=100.0)
        stale = write_file(docs_root / "stale.md", "s", mtime=200.0)
        fresh = write_file(docs_root / "fresh.md", "f", mtime=100.0)
        gone = docs_root / "gone.md"
        index_path(store, stale, mtime=150.0)
        index_path(store, fresh, mtime=100.0)
        index_path(store, gone, mtime=100.0)

        analysis = Reconciler(store, reader).reconcile([str(docs_root)])

        assert analysis.to_add == [str(new)]
        assert analysis.to_update == [str(stale)]
        assert analysis.to_remove == [str(gone)]

    def test_outputs_are_disjoint(
        self, store: VectorStore, reader: FileReader, docs_root: Path
    ) -> None:
        for i in range(5):
            path = write_file(docs_root / f"{i}.md", str(i), mtime=100.0 + i)
            if i % 2:
                index_path(store, path, mtime=50.0)
        index_path(store, docs_root / "deleted.md", mtime=1.0)

        analysis = Reconciler(store, reader).reconcile([str(docs_root)])

        lists = [set(analysis.to_add), set(analysis.to_update), set(analysis.to_remove)]
        assert lists[0].isdisjoint(lists[1])
        assert lists[0].isdisjoint(lists[2])
        assert lists[1].isdisjoint(lists[2])
        assert analysis.total == 6

    def test_documents_of_unregistered_roots_are_removed(
        self, store: VectorStore, reader: FileReader, tmp_path: Path, docs_root: Path
    ) -> None:
        other = write_file(tmp_path / "other" / "a.md", "a", mtime=10.0)
        index_path(store, other, mtime=10.0)

        analysis = Reconciler(store, reader).reconcile([str(docs_root)])

        assert analysis.to_remove == [str(other)]

    def test_ineligible_files_are_ignored(
        self, store: VectorStore, reader: FileReader, docs_root: Path
    ) -> None:
        write_file(docs_root / "code.py", "print()")
        write_file(docs_root / "big.md", "x" * 2048)

        analysis = Reconciler(store, reader).reconcile([str(docs_root)])

        assert analysis.total == 0

    def test_unchanged_tree_yields_no_work(
        self, store: VectorStore, reader: FileReader, docs_root: Path
    ) -> None:
        path = write_file(docs_root / "a.md", "a", mtime=42.0)
        index_path(store, path, mtime=42.0)

        assert Reconciler(store, reader).reconcile([str(docs_root)]).total == 0
