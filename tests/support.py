"""Shared test helpers: a deterministic embedding provider and file utilities."""

from __future__ import annotations

import hashlib
import os
import random
from collections.abc import Callable
from pathlib import Path

from similo.core.errors import EmbeddingError
from similo.embedding.base import EmbeddingProvider

DIMENSIONS = 8


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic provider: each text maps to a hash-seeded unit-ish vector.

    ``vectors`` pins exact vectors for chosen texts. ``errors`` maps a
    substring to the EmbeddingError raised for any text containing it.
    ``on_embed`` runs before each embedding, with the text.
    """

    def __init__(self, model: str = "fake-model", dimensions: int = DIMENSIONS) -> None:
        self._model = model
        self._dimensions = dimensions
        self.vectors: dict[str, list[float]] = {}
        self.errors: dict[str, EmbeddingError] = {}
        self.calls: list[str] = []
        self.on_embed: Callable[[str], None] | None = None
        self.closed = False

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.on_embed is not None:
            self.on_embed(text)
        for marker, error in self.errors.items():
            if marker in text:
                raise error
        if text in self.vectors:
            return list(self.vectors[text])
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = random.Random(seed)
        return [rng.uniform(-1.0, 1.0) for _ in range(self._dimensions)]

    def close(self) -> None:
        self.closed = True


def axis(index: int, scale: float = 1.0, dimensions: int = DIMENSIONS) -> list[float]:
    """Vector with a single non-zero component."""
    vector = [0.0] * dimensions
    vector[index] = scale
    return vector


def write_file(path: Path, content: str, mtime: float | None = None) -> Path:
    """Write a text file, creating parents, optionally pinning its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


