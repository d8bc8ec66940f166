"""Embedding capability interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from similo.core.errors import EmbeddingError, EmbeddingErrorKind

logger = structlog.get_logger()

PROBE_TEXT = "test"


class EmbeddingProvider(ABC):
    """Converts text to fixed-length vectors in one embedding space.

    Failures are raised as ``EmbeddingError`` whose ``kind`` tells callers
    whether the server was unreachable, the model is missing, or the input
    is too long for the model.
    """

    @property
    @abstractmethod
    def model_name(self) -> str: ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Dimensionality of the space; 0 until the first successful call."""

    @abstractmethod
    def embed(self, text: str) -> list[float]: ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]

    def probe(self) -> int:
        """Embed a short probe text and return the space's dimensionality.

        Raises:
            EmbeddingError: the provider is unreachable or the model is missing.
        """
        vector = self.embed(PROBE_TEXT)
        logger.debug("embedding_probe_ok", model=self.model_name, dimensions=len(vector))
        return len(vector)

    def test_connection(self) -> EmbeddingErrorKind | None:
        """Probe the provider. Returns None when healthy, else the failure kind."""
        try:
            self.probe()
        except EmbeddingError as e:
            logger.warning("embedding_probe_failed", model=self.model_name, kind=e.kind.value)
            return e.kind
        return None

    def close(self) -> None:  # noqa: B027
        """Release transport resources."""
