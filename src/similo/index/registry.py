"""Directory registry: registered roots and their summary statistics."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import update
from sqlmodel import col, select

from similo.index.models import Directory

if TYPE_CHECKING:
    from similo.index._internal.db.database import Database

logger = structlog.get_logger()


class DirectoryRegistry:
    """CRUD over the ``directories`` table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def insert(self, path: str) -> Directory:
        directory = Directory(path=path, added_at=time.time())
        with self.db.immediate_transaction() as session:
            session.add(directory)
            session.flush()
            session.refresh(directory)
            session.expunge(directory)
        logger.info("directory_registered", path=path)
        return directory

    def delete(self, path: str) -> bool:
        with self.db.immediate_transaction() as session:
            directory = session.exec(select(Directory).where(Directory.path == path)).first()
            if directory is None:
                return False
            session.delete(directory)
        logger.info("directory_unregistered", path=path)
        return True

    def find_by_path(self, path: str) -> Directory | None:
        with self.db.session() as session:
            return session.exec(select(Directory).where(Directory.path == path)).first()

    def find_all(self) -> list[Directory]:
        """All registered directories, most recently added first."""
        with self.db.session() as session:
            return list(
                session.exec(select(Directory).order_by(col(Directory.added_at).desc())).all()
            )

    def update_file_count(self, path: str, count: int) -> None:
        with self.db.immediate_transaction() as session:
            session.execute(
                update(Directory).where(col(Directory.path) == path).values(file_count=count)
            )

    def update_last_indexed_at(self, path: str, timestamp: float | None = None) -> None:
        with self.db.immediate_transaction() as session:
            session.execute(
                update(Directory)
                .where(col(Directory.path) == path)
                .values(last_indexed_at=timestamp if timestamp is not None else time.time())
            )

    def reset_stats(self) -> None:
        """Zero every directory's counters while keeping it registered."""
        with self.db.immediate_transaction() as session:
            session.execute(update(Directory).values(file_count=0, last_indexed_at=None))
        logger.info("directory_stats_reset")
