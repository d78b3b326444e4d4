"""End-to-end ingest pipeline: parse -> chunk -> embed -> upsert."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from expense_agent.ingest.chunker import BoundaryAwareChunker
from expense_agent.ingest.embedder import Embedder
from expense_agent.ingest.parser import ParserRegistry
from expense_agent.retrieval.vector_store import VectorStore
from expense_agent.types import DocumentChunk

logger = logging.getLogger(__name__)


class IngestPipeline:
    """Coordinates parser/chunker/embedder/vector store stages.

    Ingestion runs offline, once per policy revision, and never concurrently
    with the chat server. Any stage failure propagates to the caller.
    """

    def __init__(
        self,
        parser_registry: ParserRegistry,
        chunker: BoundaryAwareChunker,
        embedder: Embedder,
        vector_store: VectorStore,
    ) -> None:
        self._parser_registry = parser_registry
        self._chunker = chunker
        self._embedder = embedder
        self._vector_store = vector_store

    def ingest_path(
        self,
        path: str | Path,
        *,
        doc_id: str | None = None,
        extra_metadata: dict[str, Any] | None = None,
    ) -> list[DocumentChunk]:
        """Ingest a single source file and return the stored chunks.

        Whitespace-only chunks are dropped before embedding.
        """

        logger.info("Loading content from %s...", path)
        parsed = self._parser_registry.parse_path(path, doc_id=doc_id)
        if extra_metadata:
            parsed.metadata.update(extra_metadata)

        logger.info("Splitting document into chunks...")
        chunks = [
            chunk for chunk in self._chunker.chunk_document(parsed) if chunk.text.strip()
        ]
        if not chunks:
            logger.warning("%s produced no text; nothing to ingest", path)
            return []

        logger.info("Embedding %d chunk(s) and upserting into the vector store...", len(chunks))
        embeddings = self._embedder.embed_documents([chunk.text for chunk in chunks])
        self._vector_store.upsert(chunks, embeddings)
        return chunks
