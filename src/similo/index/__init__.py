"""Index module - semantic document index over registered directories.

Public API is in `similo.index.ops`:
- IndexCoordinator: read -> embed -> store pipeline and search

Building blocks:
- VectorStore: documents paired with sqlite-vec embeddings
- EmbeddingSpaceManager: keeps the store in one embedding space
- DirectoryRegistry: registered roots and their statistics
- Reconciler: filesystem vs index diff
- ChangeQueue: path-deduplicating FIFO of pending changes
"""

from similo.index._internal.db import Database
from similo.index.models import (
    ChangeReason,
    ChangeRecord,
    Directory,
    Document,
    EmbeddingSpace,
    IndexedDocument,
    IndexingResult,
    SearchResult,
    SimilarDocument,
    SyncAnalysis,
    distance_to_score,
)
from similo.index.ops import IndexCoordinator
from similo.index.queue import ChangeQueue
from similo.index.reconcile import Reconciler
from similo.index.registry import DirectoryRegistry
from similo.index.store import VectorStore, is_under
from similo.index.versioning import EmbeddingSpaceManager, SpaceAction, SpaceDecision

__all__ = [
    # Coordinator
    "IndexCoordinator",
    # Components
    "ChangeQueue",
    "Database",
    "DirectoryRegistry",
    "EmbeddingSpaceManager",
    "Reconciler",
    "VectorStore",
    # Models
    "ChangeReason",
    "ChangeRecord",
    "Directory",
    "Document",
    "EmbeddingSpace",
    "IndexedDocument",
    "IndexingResult",
    "SearchResult",
    "SimilarDocument",
    "SpaceAction",
    "SpaceDecision",
    "SyncAnalysis",
    # Helpers
    "distance_to_score",
    "is_under",
]
