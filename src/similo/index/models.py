"""SQLModel definitions and value types for the semantic index.

Single source of truth for the relational schema. Embedding vectors are not
stored here: each Document points at one row of the ``vec_index`` virtual
table (sqlite-vec) through ``rowid_vec``.

Timestamps are POSIX seconds (float) throughout.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4

from sqlmodel import Field, SQLModel

# ============================================================================
# ENUMS
# ============================================================================


class ChangeReason(str, Enum):
    """Why a path was queued for the indexing worker."""

    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"


# ============================================================================
# TABLES
# ============================================================================


def _new_id() -> str:
    return uuid4().hex


class Document(SQLModel, table=True):
    """One indexed text file. Exactly one row per path."""

    __tablename__ = "documents"

    id: str = Field(default_factory=_new_id, primary_key=True)
    path: str = Field(unique=True, index=True)
    content: str
    indexed_at: float
    file_modified_at: float
    file_size: int
    rowid_vec: int = Field(unique=True)


class EmbeddingSpace(SQLModel, table=True):
    """Singleton record describing the active embedding space."""

    __tablename__ = "embedding_space"

    id: int = Field(default=1, primary_key=True)
    model_name: str
    dimensions: int
    created_at: float


class Directory(SQLModel, table=True):
    """A registered root whose eligible files are indexed."""

    __tablename__ = "directories"

    id: str = Field(default_factory=_new_id, primary_key=True)
    path: str = Field(unique=True, index=True)
    added_at: float
    file_count: int = 0
    last_indexed_at: float | None = None


# ============================================================================
# VALUE TYPES
# ============================================================================


@dataclass
class IndexedDocument:
    """A document together with its embedding, as written to the store."""

    path: str
    content: str
    embedding: list[float]
    indexed_at: float
    file_modified_at: float
    file_size: int


@dataclass(frozen=True)
class ChangeRecord:
    """A pending change for one path. Lives only inside the ChangeQueue."""

    path: str
    reason: ChangeReason
    mtime: float | None = None


@dataclass(frozen=True)
class SimilarDocument:
    """A nearest-neighbor hit from the vector store."""

    document: Document
    distance: float

    @property
    def score(self) -> float:
        return distance_to_score(self.distance)


@dataclass(frozen=True)
class SearchResult:
    """A search hit as returned to callers."""

    path: str
    content: str
    score: float

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "content": self.content, "score": self.score}


@dataclass
class SyncAnalysis:
    """Partition of paths produced by reconciliation."""

    to_add: list[str] = field(default_factory=list)
    to_update: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_add) + len(self.to_update) + len(self.to_remove)


@dataclass
class IndexingResult:
    """Summary of a batch indexing pass. Batches never raise on partial failure."""

    indexed: int = 0
    skipped: int = 0
    errors: int = 0

    def __add__(self, other: "IndexingResult") -> "IndexingResult":
        return IndexingResult(
            indexed=self.indexed + other.indexed,
            skipped=self.skipped + other.skipped,
            errors=self.errors + other.errors,
        )

    def to_dict(self) -> dict[str, int]:
        return {"indexed": self.indexed, "skipped": self.skipped, "errors": self.errors}


def distance_to_score(distance: float) -> float:
    """Map an L2 distance onto (0, 1]; 1.0 only at distance 0."""
    return 1.0 / (1.0 + distance)
