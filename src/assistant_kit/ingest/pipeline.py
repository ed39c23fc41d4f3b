"""Ingest pipeline: load -> chunk -> embed -> replace in store."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from assistant_kit.ingest.chunker import SlidingWindowChunker
from assistant_kit.ingest.embedder import Embedder
from assistant_kit.ingest.loader import LoaderRegistry
from assistant_kit.retrieval.vector_store import CorpusStore
from assistant_kit.types import DocumentChunk, SourceDocument

logger = logging.getLogger(__name__)


class IngestPipeline:
    """Coordinates chunker/embedder/store stages.

    Ingestion is idempotent per document id: re-ingesting a document replaces
    the chunks stored for it instead of adding to them.
    """

    def __init__(
        self,
        chunker: SlidingWindowChunker,
        embedder: Embedder,
        store: CorpusStore,
        loader_registry: LoaderRegistry | None = None,
    ) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._store = store
        self._loader_registry = loader_registry or LoaderRegistry()

    def ingest_document(self, document: SourceDocument) -> list[DocumentChunk]:
        texts = self._chunker.split(document.text)
        embeddings = self._embedder.embed_many(texts)
        if len(embeddings) != len(texts):
            raise ValueError("Embedder returned a different number of vectors than texts")

        chunks = [
            DocumentChunk(
                chunk_id=f"{document.doc_id}-chunk-{ordinal:04d}",
                doc_id=document.doc_id,
                ordinal=ordinal,
                text=text,
                embedding=tuple(embedding),
                token_count=self._chunker.count_tokens(text),
                metadata={**document.metadata, "chunk_index": ordinal},
            )
            for ordinal, (text, embedding) in enumerate(zip(texts, embeddings, strict=True))
        ]
        self._store.replace_document(document.doc_id, chunks)
        logger.info("Ingested document %s as %d chunk(s)", document.doc_id, len(chunks))
        return chunks

    def ingest(self, documents: Iterable[SourceDocument]) -> list[DocumentChunk]:
        """Ingest many documents and return the flattened chunk list."""

        all_chunks: list[DocumentChunk] = []
        for document in documents:
            all_chunks.extend(self.ingest_document(document))
        return all_chunks

    def ingest_path(
        self,
        path: str | Path,
        *,
        doc_id: str | None = None,
        extra_metadata: dict[str, Any] | None = None,
    ) -> list[DocumentChunk]:
        """Ingest a single source file, or every supported file in a directory."""

        target = Path(path)
        if target.is_dir():
            return self.ingest(self._loader_registry.load_directory(target))

        document = self._loader_registry.load_path(target, doc_id=doc_id)
        if extra_metadata:
            document = SourceDocument(
                doc_id=document.doc_id,
                text=document.text,
                metadata={**document.metadata, **extra_metadata},
            )
        return self.ingest_document(document)
