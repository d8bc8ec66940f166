"""Ollama embedding provider over HTTP.

Failures are classified from transport exceptions and status codes only:

- connect errors and timeouts -> connection_failed
- 404 -> model_not_found
- 400 (requests are sent with truncation disabled) -> context_length_exceeded
- anything else, or a malformed body -> server_error
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from similo.core.errors import EmbeddingError
from similo.embedding.base import EmbeddingProvider

logger = structlog.get_logger()


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embeds text with ``POST /api/embed``."""

    def __init__(
        self,
        host: str,
        model: str,
        timeout: float = 30.0,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self.host = host.rstrip("/")
        self._model = model
        self._dimensions = 0
        self._client = client or httpx.Client(base_url=self.host, timeout=timeout)
        logger.debug("ollama_provider_created", host=self.host, model=model)

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> list[float]:
        payload = {"model": self._model, "input": text, "truncate": False}
        try:
            response = self._client.post("/api/embed", json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise EmbeddingError.connection_failed(self.host, str(e) or type(e).__name__) from e
        except httpx.HTTPError as e:
            raise EmbeddingError.server_error(str(e) or type(e).__name__) from e

        if response.status_code == 404:
            raise EmbeddingError.model_not_found(self._model)
        if response.status_code == 400:
            raise EmbeddingError.context_length_exceeded(self._model, len(text))
        if response.status_code >= 300:
            raise EmbeddingError.server_error(_error_text(response), response.status_code)

        vector = _parse_embedding(response)
        if len(vector) != self._dimensions:
            logger.debug(
                "embedding_dimensions_updated",
                previous=self._dimensions,
                dimensions=len(vector),
            )
            self._dimensions = len(vector)
        return vector

    def close(self) -> None:
        self._client.close()


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


def _parse_embedding(response: httpx.Response) -> list[float]:
    try:
        body: Any = response.json()
    except ValueError as e:
        raise EmbeddingError.server_error("response is not JSON", response.status_code) from e
    embeddings = body.get("embeddings") if isinstance(body, dict) else None
    if not embeddings or not isinstance(embeddings, list) or not embeddings[0]:
        raise EmbeddingError.server_error("empty embedding returned", response.status_code)
    return [float(x) for x in embeddings[0]]
