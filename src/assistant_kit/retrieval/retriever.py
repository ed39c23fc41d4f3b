"""Similarity retrieval and prompt augmentation."""

from __future__ import annotations

import logging

from assistant_kit.config import RetrievalConfig
from assistant_kit.ingest.embedder import Embedder
from assistant_kit.retrieval.vector_store import CorpusStore
from assistant_kit.types import ScoredChunk

logger = logging.getLogger(__name__)


class Retriever:
    """Ranks stored chunks by cosine similarity to a query.

    An empty corpus yields an empty result rather than an error; the query is
    not even embedded in that case.
    """

    def __init__(
        self,
        store: CorpusStore,
        embedder: Embedder,
        config: RetrievalConfig | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.config = config or RetrievalConfig()

    def retrieve(self, query: str, *, top_k: int | None = None) -> list[ScoredChunk]:
        limit = self.config.top_k if top_k is None else top_k
        if limit < 0:
            raise ValueError(f"top_k must be >= 0, got {limit}")
        if limit == 0 or len(self.store) == 0:
            return []
        query_embedding = self.embedder.embed(query)
        hits = self.store.search(query_embedding, limit, min_score=self.config.min_score)
        logger.debug("Retrieved %d chunk(s) for query of %d chars", len(hits), len(query))
        return hits

    def augment(self, prompt: str, hits: list[ScoredChunk]) -> str:
        """Prepend retrieved chunk texts, in rank order, as a context block."""

        if not hits:
            return prompt
        context = "\n\n".join(hit.chunk.text.strip() for hit in hits)
        return f"{self.config.context_header}\n---\n{context}\n---\n\n{prompt}"
