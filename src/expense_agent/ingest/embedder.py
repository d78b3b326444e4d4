"""Embedding abstractions and concrete clients."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from hashlib import blake2b
from math import sqrt
from typing import Any

from expense_agent.errors import ServiceError

logger = logging.getLogger(__name__)


class Embedder(ABC):
    """Embedder interface used by ingest and retrieval components."""

    @abstractmethod
    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed many documents."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed one query."""


class OpenAIEmbedder(Embedder):
    """Hosted embeddings through `langchain_openai.OpenAIEmbeddings`.

    Provider failures (quota, auth, network) are re-raised as `ServiceError`
    without retrying.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "text-embedding-3-small",
        client: Any | None = None,
    ) -> None:
        if client is None:
            from langchain_openai import OpenAIEmbeddings

            client = OpenAIEmbeddings(model=model, api_key=api_key, max_retries=0)
        self._client = client

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        logger.debug("Embedding %d document(s)", len(texts))
        try:
            return self._client.embed_documents(texts)
        except Exception as exc:
            raise ServiceError(f"Embedding request failed: {exc}") from exc

    def embed_query(self, text: str) -> list[float]:
        try:
            return self._client.embed_query(text)
        except Exception as exc:
            raise ServiceError(f"Embedding request failed: {exc}") from exc


class HashingEmbedder(Embedder):
    """Deterministic sparse-like embedding without external model calls.

    Used for tests and offline smoke runs.
    """

    def __init__(self, dimension: int = 256) -> None:
        self.dimension = dimension

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        vector = [0.0 for _ in range(self.dimension)]
        tokens = text.lower().split()
        if not tokens:
            return vector

        for token in tokens:
            digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            sign = -1.0 if digest[4] % 2 else 1.0
            vector[idx] += sign

        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]
