"""Vector store: one document + one embedding per path.

Documents live in the ``documents`` table; embeddings live in the sqlite-vec
``vec_index`` virtual table and are paired through ``Document.rowid_vec``.
Every write touches both inside a single BEGIN IMMEDIATE transaction, so a
concurrent reader sees either the old pair or the new one.

Similarity is L2 distance; callers see score = 1 / (1 + distance).
"""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import text
from sqlite_vec import serialize_float32
from sqlmodel import col, func, select

from similo.core.errors import StoreError
from similo.index.models import Document, IndexedDocument, SimilarDocument

if TYPE_CHECKING:
    from sqlmodel import Session

    from similo.index._internal.db.database import Database

logger = structlog.get_logger()

VEC_TABLE = "vec_index"

# sqlite-vec rejects KNN queries with k above this
KNN_MAX_K = 4096

_DIMENSIONS_RE = re.compile(r"float\[(\d+)\]", re.IGNORECASE)

_PREFIX_CONDITION = "(path = :root OR substr(path, 1, :prefix_len) = :prefix)"


def normalize_root(root: str) -> str:
    """Strip trailing separators, keeping the filesystem root intact."""
    stripped = root.rstrip(os.sep)
    return stripped or os.sep


def is_under(path: str, root: str) -> bool:
    """True when path equals root or lies below it (component-wise)."""
    root = normalize_root(root)
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def _prefix_params(root: str) -> dict[str, Any]:
    root = normalize_root(root)
    prefix = root if root.endswith(os.sep) else root + os.sep
    return {"root": root, "prefix": prefix, "prefix_len": len(prefix)}


class VectorStore:
    """Document/embedding store with a single active dimensionality."""

    def __init__(self, db: Database, overfetch_factor: int = 2) -> None:
        self.db = db
        self.overfetch_factor = max(1, overfetch_factor)
        self._dimensions: int | None = None

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def create_vector_index(self, dimensions: int) -> None:
        """Create the vec0 table if it does not exist yet."""
        self.db.execute_raw(
            f"CREATE VIRTUAL TABLE IF NOT EXISTS {VEC_TABLE} "
            f"USING vec0(embedding float[{int(dimensions)}])"
        )
        self._dimensions = self.vector_dimensions()
        logger.debug("vector_index_created", dimensions=dimensions)

    def vector_dimensions(self) -> int | None:
        """Dimensionality of the existing vec0 table, or None when absent."""
        with self.db.session() as session:
            row = session.execute(
                text("SELECT sql FROM sqlite_master WHERE name = :name"),
                {"name": VEC_TABLE},
            ).first()
        if row is None or row[0] is None:
            return None
        match = _DIMENSIONS_RE.search(row[0])
        return int(match.group(1)) if match else None

    def reset(self, dimensions: int) -> None:
        """Drop every document and vector and recreate the index at ``dimensions``."""
        with self.db.immediate_transaction() as session:
            session.execute(text("DELETE FROM documents"))
            session.execute(text(f"DROP TABLE IF EXISTS {VEC_TABLE}"))
            session.execute(
                text(
                    f"CREATE VIRTUAL TABLE {VEC_TABLE} "
                    f"USING vec0(embedding float[{int(dimensions)}])"
                )
            )
        self._dimensions = int(dimensions)
        logger.info("vector_store_reset", dimensions=dimensions)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, doc: IndexedDocument) -> None:
        """Insert a new document and allocate a fresh vector slot."""
        self._check_dimensions(doc)
        with self.db.immediate_transaction() as session:
            self._insert(session, doc)
        logger.debug("document_inserted", path=doc.path)

    def update(self, doc: IndexedDocument) -> None:
        """Replace a document in place, reusing its vector slot.

        Falls back to insert when the path is unknown (e.g. after a reset).
        """
        self._check_dimensions(doc)
        with self.db.immediate_transaction() as session:
            existing = session.exec(select(Document).where(Document.path == doc.path)).first()
            if existing is None:
                self._insert(session, doc)
                logger.debug("document_update_fell_back_to_insert", path=doc.path)
                return

            rowid = existing.rowid_vec
            session.execute(text(f"DELETE FROM {VEC_TABLE} WHERE rowid = :rowid"), {"rowid": rowid})
            session.execute(
                text(f"INSERT INTO {VEC_TABLE}(rowid, embedding) VALUES (:rowid, :embedding)"),
                {"rowid": rowid, "embedding": serialize_float32(doc.embedding)},
            )
            existing.content = doc.content
            existing.indexed_at = doc.indexed_at
            existing.file_modified_at = doc.file_modified_at
            existing.file_size = doc.file_size
            session.add(existing)
            session.flush()
        logger.debug("document_updated", path=doc.path)

    def _check_dimensions(self, doc: IndexedDocument) -> None:
        if self._dimensions is None:
            self._dimensions = self.vector_dimensions()
        if self._dimensions is not None and len(doc.embedding) != self._dimensions:
            raise StoreError.dimension_mismatch(doc.path, self._dimensions, len(doc.embedding))

    def _insert(self, session: Session, doc: IndexedDocument) -> None:
        result = session.execute(
            text(f"INSERT INTO {VEC_TABLE}(embedding) VALUES (:embedding)"),
            {"embedding": serialize_float32(doc.embedding)},
        )
        rowid = result.lastrowid
        session.add(
            Document(
                path=doc.path,
                content=doc.content,
                indexed_at=doc.indexed_at,
                file_modified_at=doc.file_modified_at,
                file_size=doc.file_size,
                rowid_vec=rowid,
            )
        )
        session.flush()

    def delete(self, path: str) -> bool:
        """Delete the document and its vector. Unknown paths are a no-op."""
        with self.db.immediate_transaction() as session:
            existing = session.exec(select(Document).where(Document.path == path)).first()
            if existing is None:
                return False
            session.execute(
                text(f"DELETE FROM {VEC_TABLE} WHERE rowid = :rowid"),
                {"rowid": existing.rowid_vec},
            )
            session.delete(existing)
        logger.debug("document_deleted", path=path)
        return True

    def delete_by_prefix(self, root: str) -> int:
        """Delete every document at or below root. Returns the number removed."""
        params = _prefix_params(root)
        with self.db.immediate_transaction() as session:
            rowids = [
                row[0]
                for row in session.execute(
                    text(f"SELECT rowid_vec FROM documents WHERE {_PREFIX_CONDITION}"),
                    params,
                )
            ]
            for rowid in rowids:
                session.execute(
                    text(f"DELETE FROM {VEC_TABLE} WHERE rowid = :rowid"), {"rowid": rowid}
                )
            result = session.execute(
                text(f"DELETE FROM documents WHERE {_PREFIX_CONDITION}"), params
            )
            removed = int(result.rowcount)
        logger.info("documents_deleted_by_prefix", root=params["root"], count=removed)
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_path(self, path: str) -> Document | None:
        with self.db.session() as session:
            return session.exec(select(Document).where(Document.path == path)).first()

    def find_all(self) -> list[Document]:
        with self.db.session() as session:
            return list(session.exec(select(Document).order_by(col(Document.path))).all())

    def list_modified_times(self) -> dict[str, float]:
        """Map of every indexed path to its stored file mtime."""
        with self.db.session() as session:
            rows = session.exec(select(Document.path, Document.file_modified_at)).all()
        return {path: mtime for path, mtime in rows}

    def paths_under(self, root: str) -> list[str]:
        """Indexed paths at or below root, sorted."""
        with self.db.session() as session:
            rows = session.execute(
                text(f"SELECT path FROM documents WHERE {_PREFIX_CONDITION} ORDER BY path"),
                _prefix_params(root),
            ).all()
        return [row[0] for row in rows]

    def count(self) -> int:
        with self.db.session() as session:
            return int(session.exec(select(func.count()).select_from(Document)).one())

    def count_by_prefix(self, root: str) -> int:
        with self.db.session() as session:
            row = session.execute(
                text(f"SELECT COUNT(*) FROM documents WHERE {_PREFIX_CONDITION}"),
                _prefix_params(root),
            ).one()
        return int(row[0])

    def find_similar(
        self,
        vector: list[float],
        k: int,
        path_prefix: str | None = None,
    ) -> list[SimilarDocument]:
        """Nearest neighbors ordered by ascending distance, at most k.

        With a path prefix the KNN search is over-fetched and filtered. The
        candidate window starts at ``k * overfetch_factor`` and doubles while
        the window came back full without yielding k matches.
        """
        if k <= 0:
            return []

        total = self.count()
        if total == 0:
            return []

        if path_prefix is None:
            return self._knn(vector, min(k, total, KNN_MAX_K))

        limit = min(total, KNN_MAX_K)
        fetch = min(k * self.overfetch_factor, limit)
        while True:
            candidates = self._knn(vector, fetch)
            matches = [c for c in candidates if is_under(c.document.path, path_prefix)]
            if len(matches) >= k or len(candidates) < fetch or fetch >= limit:
                break
            fetch = min(fetch * 2, limit)
            logger.debug("prefix_search_widened", prefix=path_prefix, fetch=fetch)
        return matches[:k]

    def _knn(self, vector: list[float], k: int) -> list[SimilarDocument]:
        if k <= 0:
            return []
        with self.db.session() as session:
            rows = session.execute(
                text(
                    f"WITH knn AS ("
                    f"  SELECT rowid, distance FROM {VEC_TABLE}"
                    f"  WHERE embedding MATCH :embedding AND k = :k"
                    f") "
                    f"SELECT d.id, d.path, d.content, d.indexed_at, d.file_modified_at, "
                    f"d.file_size, d.rowid_vec, knn.distance "
                    f"FROM knn JOIN documents d ON d.rowid_vec = knn.rowid "
                    f"ORDER BY knn.distance"
                ),
                {"embedding": serialize_float32(vector), "k": k},
            ).all()
        results: list[SimilarDocument] = []
        for row in rows:
            mapping = dict(row._mapping)
            distance = float(mapping.pop("distance"))
            results.append(SimilarDocument(document=Document(**mapping), distance=distance))
        return results
