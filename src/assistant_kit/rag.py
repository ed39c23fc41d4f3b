"""Retrieval-augmented generation pipeline: one corpus, two phases."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from assistant_kit.config import ChunkingConfig, RetrievalConfig
from assistant_kit.ingest.chunker import SlidingWindowChunker
from assistant_kit.ingest.embedder import Embedder
from assistant_kit.ingest.pipeline import IngestPipeline
from assistant_kit.retrieval.retriever import Retriever
from assistant_kit.retrieval.vector_store import CorpusStore, InMemoryVectorStore
from assistant_kit.types import DocumentChunk, ScoredChunk, SourceDocument


class RagPipeline:
    """Owns a chunk corpus: built by `ingest`, read by `retrieve`.

    Ingestion and retrieval share the same embedder so that query and chunk
    vectors live in the same space.
    """

    def __init__(
        self,
        embedder: Embedder,
        *,
        store: CorpusStore | None = None,
        chunking: ChunkingConfig | None = None,
        retrieval: RetrievalConfig | None = None,
    ) -> None:
        self.store = store if store is not None else InMemoryVectorStore()
        self.ingestion = IngestPipeline(SlidingWindowChunker(chunking), embedder, self.store)
        self.retriever = Retriever(self.store, embedder, retrieval)

    def ingest(self, documents: Iterable[SourceDocument]) -> list[DocumentChunk]:
        return self.ingestion.ingest(documents)

    def ingest_path(
        self,
        path: str | Path,
        *,
        doc_id: str | None = None,
        extra_metadata: dict[str, Any] | None = None,
    ) -> list[DocumentChunk]:
        return self.ingestion.ingest_path(path, doc_id=doc_id, extra_metadata=extra_metadata)

    def retrieve(self, query: str, top_k: int | None = None) -> list[ScoredChunk]:
        return self.retriever.retrieve(query, top_k=top_k)

    def augment(self, prompt: str) -> tuple[str, list[ScoredChunk]]:
        """Use `prompt` as the query and prepend what it retrieves."""

        hits = self.retrieve(prompt)
        return self.retriever.augment(prompt, hits), hits
