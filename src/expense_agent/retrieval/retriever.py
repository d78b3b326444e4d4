"""Query-time policy retrieval."""

from __future__ import annotations

import logging

from expense_agent.config import RetrievalConfig
from expense_agent.ingest.embedder import Embedder
from expense_agent.retrieval.vector_store import VectorStore
from expense_agent.types import ScoredChunk

logger = logging.getLogger(__name__)


class PolicyRetriever:
    """Embeds a question and returns the closest policy chunks."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Embedder,
        config: RetrievalConfig | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.embedder = embedder
        self.config = config or RetrievalConfig()

    def retrieve(self, query: str, *, top_k: int | None = None) -> list[ScoredChunk]:
        k = top_k or self.config.top_k
        query_embedding = self.embedder.embed_query(query)
        hits = self.vector_store.search(query_embedding, k)
        logger.debug("Retrieved %d chunk(s) for query %r", len(hits), query)
        return hits
