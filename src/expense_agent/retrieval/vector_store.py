"""Vector store interfaces and concrete adapters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import sqrt
from pathlib import Path
from typing import Any, Protocol, cast

from expense_agent.errors import ServiceError
from expense_agent.ingest.embedder import Embedder
from expense_agent.types import DocumentChunk, ScoredChunk

logger = logging.getLogger(__name__)


class VectorStore(Protocol):
    """Minimal vector store contract for ingestion and retrieval."""

    def upsert(self, chunks: list[DocumentChunk], embeddings: list[list[float]]) -> None:
        """Insert or update chunk vectors."""

    def search(self, query_embedding: list[float], k: int) -> list[ScoredChunk]:
        """Return up to `k` chunks ranked by descending similarity."""


@dataclass(slots=True)
class _StoredVector:
    chunk: DocumentChunk
    embedding: list[float]


class InMemoryVectorStore:
    """Deterministic cosine-similarity store used for tests and local runs."""

    def __init__(self) -> None:
        self._store: dict[str, _StoredVector] = {}

    def __len__(self) -> int:
        return len(self._store)

    def upsert(self, chunks: list[DocumentChunk], embeddings: list[list[float]]) -> None:
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings must have the same length")
        for chunk, embedding in zip(chunks, embeddings, strict=True):
            self._store[chunk.chunk_id] = _StoredVector(chunk=chunk, embedding=embedding)

    def search(self, query_embedding: list[float], k: int) -> list[ScoredChunk]:
        # sorted() is stable, so equal scores keep insertion order.
        ranked = sorted(
            (
                ScoredChunk(
                    chunk=record.chunk,
                    score=_cosine_similarity(query_embedding, record.embedding),
                )
                for record in self._store.values()
            ),
            key=lambda item: item.score,
            reverse=True,
        )
        return [
            ScoredChunk(chunk=item.chunk, score=item.score, rank=i + 1)
            for i, item in enumerate(ranked[:k])
        ]


class FaissVectorStoreAdapter:
    """FAISS adapter via LangChain community integration.

    The index lives in memory while ingesting and is written to
    `<index_dir>/<index_name>.faiss` by `save()`; the chat server reopens it
    with `load()`. Scores are converted from L2 distance to a similarity in
    `(0, 1]` so the adapter honours the same "higher is better" contract as
    `InMemoryVectorStore`.
    """

    def __init__(self, embedder: Embedder, *, index_name: str = "documents") -> None:
        try:
            from langchain_community.vectorstores import FAISS
            from langchain_core.embeddings import Embeddings
        except Exception as exc:  # pragma: no cover - import path is environment-dependent
            raise RuntimeError(
                "FAISS dependencies are not available. Install langchain-community/faiss-cpu."
            ) from exc

        class _EmbeddingAdapter(Embeddings):
            def __init__(self, adapter_embedder: Embedder) -> None:
                self._embedder = adapter_embedder

            def embed_documents(self, texts: list[str]) -> list[list[float]]:
                return cast(list[list[float]], self._embedder.embed_documents(texts))

            def embed_query(self, text: str) -> list[float]:
                return cast(list[float], self._embedder.embed_query(text))

        self._faiss_cls = FAISS
        self._embeddings = _EmbeddingAdapter(embedder)
        self._index_name = index_name
        self._index: Any | None = None

    def upsert(self, chunks: list[DocumentChunk], embeddings: list[list[float]]) -> None:
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings must have the same length")
        if not chunks:
            return

        text_embeddings = list(zip([chunk.text for chunk in chunks], embeddings, strict=True))
        metadatas = [_chunk_metadata(chunk) for chunk in chunks]
        ids = [chunk.chunk_id for chunk in chunks]

        if self._index is None:
            self._index = self._faiss_cls.from_embeddings(
                text_embeddings=text_embeddings,
                embedding=self._embeddings,
                metadatas=metadatas,
                ids=ids,
            )
            return

        stale = [chunk_id for chunk_id in ids if chunk_id in self._index.index_to_docstore_id.values()]
        if stale:
            self._index.delete(ids=stale)
        self._index.add_embeddings(
            text_embeddings=text_embeddings,
            metadatas=metadatas,
            ids=ids,
        )

    def search(self, query_embedding: list[float], k: int) -> list[ScoredChunk]:
        if self._index is None:
            return []
        try:
            docs_and_distances = self._index.similarity_search_with_score_by_vector(
                embedding=query_embedding,
                k=k,
            )
        except Exception as exc:
            raise ServiceError(f"Vector search failed: {exc}") from exc

        scored = [
            ScoredChunk(chunk=_document_to_chunk(doc), score=1.0 / (1.0 + float(distance)))
            for doc, distance in docs_and_distances
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return [
            ScoredChunk(chunk=item.chunk, score=item.score, rank=i + 1)
            for i, item in enumerate(scored)
        ]

    def save(self, index_dir: str | Path) -> None:
        if self._index is None:
            raise ValueError("Nothing to save: the index is empty")
        Path(index_dir).mkdir(parents=True, exist_ok=True)
        self._index.save_local(str(index_dir), index_name=self._index_name)
        logger.info("Saved FAISS index %r to %s", self._index_name, index_dir)

    def load(self, index_dir: str | Path) -> bool:
        """Open a previously saved index; returns False when none exists."""

        index_file = Path(index_dir) / f"{self._index_name}.faiss"
        if not index_file.exists():
            logger.warning("No FAISS index at %s; policy search will find nothing", index_file)
            return False
        # The pickle side-file is written by our own ingestion run.
        self._index = self._faiss_cls.load_local(
            str(index_dir),
            self._embeddings,
            index_name=self._index_name,
            allow_dangerous_deserialization=True,
        )
        logger.info("Loaded FAISS index %r from %s", self._index_name, index_dir)
        return True


def _chunk_metadata(chunk: DocumentChunk) -> dict[str, Any]:
    return {
        **chunk.metadata,
        "chunk_id": chunk.chunk_id,
        "doc_id": chunk.doc_id,
        "start": chunk.start,
        "overlap": chunk.overlap,
    }


def _document_to_chunk(doc: Any) -> DocumentChunk:
    metadata = dict(doc.metadata)
    return DocumentChunk(
        chunk_id=str(metadata.get("chunk_id", "unknown")),
        doc_id=str(metadata.get("doc_id", "unknown")),
        text=doc.page_content,
        start=int(metadata.get("start", 0)),
        overlap=int(metadata.get("overlap", 0)),
        metadata=metadata,
    )


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
