"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages and
provides real SQLite-backed fixtures around a deterministic embedding provider.
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from similo.config.loader import SimiloPaths, get_paths  # noqa: E402
from similo.config.models import SimiloConfig  # noqa: E402
from similo.daemon.lifecycle import ServerController, build_controller  # noqa: E402
from similo.files.reader import FileReader  # noqa: E402
from similo.index._internal.db import Database  # noqa: E402
from similo.index.ops import IndexCoordinator  # noqa: E402
from similo.index.queue import ChangeQueue  # noqa: E402
from similo.index.registry import DirectoryRegistry  # noqa: E402
from similo.index.store import VectorStore  # noqa: E402
from tests.support import DIMENSIONS, FakeEmbeddingProvider  # noqa: E402


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    database = Database(tmp_path / "home" / "index.db")
    database.create_all()
    yield database
    database.close()


@pytest.fixture
def store(db: Database) -> VectorStore:
    vector_store = VectorStore(db)
    vector_store.create_vector_index(DIMENSIONS)
    return vector_store


@pytest.fixture
def registry(db: Database) -> DirectoryRegistry:
    return DirectoryRegistry(db)


@pytest.fixture
def reader() -> FileReader:
    return FileReader(
        extensions=[".md", ".txt"],
        ignore_patterns=["node_modules", ".git", "*.min.js"],
        max_file_size=1024,
    )


@pytest.fixture
def queue(reader: FileReader) -> ChangeQueue:
    return ChangeQueue(reader)


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    root = tmp_path.resolve() / "docs"
    root.mkdir()
    return root


@pytest.fixture
def coordinator(
    db: Database,
    store: VectorStore,
    registry: DirectoryRegistry,
    reader: FileReader,
    fake_provider: FakeEmbeddingProvider,
    queue: ChangeQueue,
) -> IndexCoordinator:
    coord = IndexCoordinator(db, store, registry, reader, fake_provider, queue)
    coord.ensure_embedding_space()
    return coord


@pytest.fixture
def paths(tmp_path: Path) -> SimiloPaths:
    return get_paths(tmp_path / "home")


@pytest.fixture
def controller(
    paths: SimiloPaths, fake_provider: FakeEmbeddingProvider
) -> Generator[ServerController, None, None]:
    """A fully wired controller over a temporary home, prepared but not started."""
    ctrl = build_controller(SimiloConfig(), paths, provider=fake_provider)
    ctrl.prepare()
    yield ctrl
    ctrl.db.close()
