"""Embedding-space governance.

A similarity index is only meaningful when every vector comes from the same
embedding function at the same dimensionality. ``EmbeddingSpaceManager``
runs once at startup, before any index mutation, and either adopts the
stored space or destructively resets the store to match the provider.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog
from sqlmodel import select

from similo.index.models import EmbeddingSpace

if TYPE_CHECKING:
    from similo.index._internal.db.database import Database
    from similo.index.registry import DirectoryRegistry
    from similo.index.store import VectorStore

logger = structlog.get_logger()


class SpaceAction(Enum):
    """Outcome of embedding-space governance."""

    INITIALIZED = "initialized"
    UNCHANGED = "unchanged"
    RESET_DIMENSIONS = "reset_dimensions"
    RESET_MODEL = "reset_model"


@dataclass(frozen=True)
class SpaceDecision:
    action: SpaceAction
    model_name: str
    dimensions: int
    previous_model: str | None = None
    previous_dimensions: int | None = None

    @property
    def was_reset(self) -> bool:
        return self.action in (SpaceAction.RESET_DIMENSIONS, SpaceAction.RESET_MODEL)


class EmbeddingSpaceManager:
    """Keeps the store homogeneous with the configured embedding space."""

    def __init__(self, db: Database, store: VectorStore, registry: DirectoryRegistry) -> None:
        self.db = db
        self.store = store
        self.registry = registry

    def get(self) -> EmbeddingSpace | None:
        with self.db.session() as session:
            return session.get(EmbeddingSpace, 1)

    def _save(self, model_name: str, dimensions: int) -> None:
        with self.db.immediate_transaction() as session:
            space = session.exec(select(EmbeddingSpace).where(EmbeddingSpace.id == 1)).first()
            if space is None:
                space = EmbeddingSpace(
                    id=1, model_name=model_name, dimensions=dimensions, created_at=time.time()
                )
            else:
                space.model_name = model_name
                space.dimensions = dimensions
                space.created_at = time.time()
            session.add(space)

    def ensure(self, model_name: str, dimensions: int) -> SpaceDecision:
        """Reconcile the stored space with the provider's model and dimensionality.

        - No stored space: create the vector index and record the space.
        - Same model and dimensions: keep everything.
        - Same model, different dimensions: wipe documents and vectors.
        - Different model: wipe as above and zero directory statistics.
          Directories stay registered so a later reconciliation re-syncs them.
        """
        if dimensions <= 0:
            raise ValueError(f"Embedding dimensions must be positive, got {dimensions}")

        stored = self.get()

        if stored is None:
            if self.store.vector_dimensions() not in (None, dimensions):
                self.store.reset(dimensions)
            else:
                self.store.create_vector_index(dimensions)
            self._save(model_name, dimensions)
            logger.info("embedding_space_initialized", model=model_name, dimensions=dimensions)
            return SpaceDecision(SpaceAction.INITIALIZED, model_name, dimensions)

        if stored.model_name != model_name:
            logger.warning(
                "embedding_model_changed",
                previous_model=stored.model_name,
                model=model_name,
                dimensions=dimensions,
            )
            self.store.reset(dimensions)
            self.registry.reset_stats()
            self._save(model_name, dimensions)
            return SpaceDecision(
                SpaceAction.RESET_MODEL,
                model_name,
                dimensions,
                previous_model=stored.model_name,
                previous_dimensions=stored.dimensions,
            )

        if stored.dimensions != dimensions:
            logger.warning(
                "embedding_dimensions_changed",
                model=model_name,
                previous_dimensions=stored.dimensions,
                dimensions=dimensions,
            )
            self.store.reset(dimensions)
            self._save(model_name, dimensions)
            return SpaceDecision(
                SpaceAction.RESET_DIMENSIONS,
                model_name,
                dimensions,
                previous_model=stored.model_name,
                previous_dimensions=stored.dimensions,
            )

        # Tables may have been created after the space row (e.g. fresh file copy)
        self.store.create_vector_index(dimensions)
        logger.debug("embedding_space_unchanged", model=model_name, dimensions=dimensions)
        return SpaceDecision(SpaceAction.UNCHANGED, model_name, dimensions)
