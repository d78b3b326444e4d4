"""Offline ingestion entrypoint: embeds the expense policy into the FAISS index.

The run takes no flags. Input path, index location and index name come from
`Settings` (environment), chunking is fixed at 1000 characters with a
200-character overlap.
"""

from __future__ import annotations

import logging
import sys

from expense_agent.config import ChunkingConfig, Settings
from expense_agent.errors import ConfigurationError
from expense_agent.ingest.chunker import BoundaryAwareChunker
from expense_agent.ingest.embedder import Embedder, OpenAIEmbedder
from expense_agent.ingest.parser import ParserRegistry
from expense_agent.ingest.pipeline import IngestPipeline
from expense_agent.obs.logs import configure_logging
from expense_agent.retrieval.vector_store import FaissVectorStoreAdapter
from expense_agent.types import DocumentChunk

logger = logging.getLogger(__name__)

INGEST_CHUNKING = ChunkingConfig(chunk_size=1000, chunk_overlap=200)


def run(settings: Settings, *, embedder: Embedder | None = None) -> list[DocumentChunk]:
    """Ingest the configured policy document and persist the index."""

    if embedder is None:
        embedder = OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
        )
    vector_store = FaissVectorStoreAdapter(embedder, index_name=settings.vector_index_name)
    pipeline = IngestPipeline(
        ParserRegistry(),
        BoundaryAwareChunker(INGEST_CHUNKING),
        embedder,
        vector_store,
    )

    chunks = pipeline.ingest_path(settings.policy_document_path, doc_id="expenses-policy")
    if not chunks:
        raise ValueError(f"{settings.policy_document_path} contains no text to ingest")
    vector_store.save(settings.vector_index_dir)
    return chunks


def main() -> int:
    configure_logging()
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logger.error("Ingestion failed: %s", exc)
        return 1

    configure_logging(settings.log_level)
    try:
        chunks = run(settings)
    except Exception:
        logger.exception("Ingestion failed")
        return 1

    logger.info(
        "Ingestion complete: %d chunk(s) stored in %s", len(chunks), settings.vector_index_dir
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
