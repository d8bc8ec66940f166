"""Embedding capability - provider interface and the Ollama adapter."""

from similo.embedding.base import EmbeddingProvider
from similo.embedding.ollama import OllamaEmbeddingProvider

__all__ = ["EmbeddingProvider", "OllamaEmbeddingProvider"]
