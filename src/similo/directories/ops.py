"""Directory operations - add, remove, list registered roots.

Validate, then act: every check runs before the first mutation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from similo.core.errors import DirectoryError
from similo.index.store import normalize_root

if TYPE_CHECKING:
    from similo.index.models import Directory
    from similo.index.ops import IndexCoordinator

logger = structlog.get_logger()


@dataclass
class DirectoryInfo:
    """A registered directory with its current statistics."""

    id: str
    path: str
    added_at: float
    file_count: int
    last_indexed_at: float | None

    @classmethod
    def from_model(cls, directory: Directory, file_count: int | None = None) -> DirectoryInfo:
        return cls(
            id=directory.id,
            path=directory.path,
            added_at=directory.added_at,
            file_count=directory.file_count if file_count is None else file_count,
            last_indexed_at=directory.last_indexed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "added_at": self.added_at,
            "file_count": self.file_count,
            "last_indexed_at": self.last_indexed_at,
        }


@dataclass
class AddDirectoryResult:
    directory: DirectoryInfo
    queued_count: int
    created: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": self.directory.to_dict(),
            "queued_count": self.queued_count,
            "created": self.created,
        }


def resolve_directory_path(path: str | Path) -> str:
    """Absolute, normalized form used as the registry key."""
    return normalize_root(str(Path(path).expanduser().absolute().resolve()))


class DirectoryOps:
    """Registry mutations plus the index and queue side effects they imply.

    Document deletion goes through the coordinator so it serializes with
    the indexing worker's writes.
    """

    def __init__(
        self,
        coordinator: IndexCoordinator,
        on_roots_changed: Callable[[], None] | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.registry = coordinator.registry
        self.store = coordinator.store
        self.queue = coordinator.queue
        self._on_roots_changed = on_roots_changed

    def add(self, path: str | Path) -> AddDirectoryResult:
        """Register a directory and queue its files.

        Adding an already registered directory re-queues its files.

        Raises:
            DirectoryError: path does not exist or is not a directory.
        """
        absolute = resolve_directory_path(path)
        target = Path(absolute)
        if not target.exists():
            raise DirectoryError.invalid_path(absolute, "directory not found")
        if not target.is_dir():
            raise DirectoryError.invalid_path(absolute, "not a directory")

        existing = self.registry.find_by_path(absolute)
        if existing is not None:
            queued = self.queue.enqueue_directory(absolute)
            logger.info("directory_requeued", path=absolute, queued=queued)
            return AddDirectoryResult(
                directory=DirectoryInfo.from_model(existing, self.store.count_by_prefix(absolute)),
                queued_count=queued,
                created=False,
            )

        directory = self.registry.insert(absolute)
        queued = self.queue.enqueue_directory(absolute)
        self._notify()
        return AddDirectoryResult(
            directory=DirectoryInfo.from_model(directory),
            queued_count=queued,
            created=True,
        )

    def remove(self, path: str | Path) -> int:
        """Unregister a directory and delete its documents. Returns documents removed.

        Raises:
            DirectoryError: the directory is not registered.
        """
        absolute = resolve_directory_path(path)
        if self.registry.find_by_path(absolute) is None:
            raise DirectoryError.not_registered(absolute)

        removed = self.coordinator.remove_directory(absolute)
        self.registry.delete(absolute)
        self._notify()
        logger.info("directory_removed", path=absolute, documents=removed)
        return removed

    def list(self) -> list[DirectoryInfo]:
        """Registered directories with real-time document counts."""
        return [
            DirectoryInfo.from_model(d, self.store.count_by_prefix(d.path))
            for d in self.registry.find_all()
        ]

    def get(self, path: str | Path) -> DirectoryInfo | None:
        absolute = resolve_directory_path(path)
        directory = self.registry.find_by_path(absolute)
        if directory is None:
            return None
        return DirectoryInfo.from_model(directory, self.store.count_by_prefix(absolute))

    def _notify(self) -> None:
        if self._on_roots_changed is not None:
            self._on_roots_changed()
