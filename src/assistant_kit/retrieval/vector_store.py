"""Corpus store contract and the in-memory implementation."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import count
from math import sqrt
from typing import Protocol

from assistant_kit.types import DocumentChunk, ScoredChunk


class CorpusStore(Protocol):
    """Minimal chunk store contract for ingestion and retrieval."""

    def replace_document(self, doc_id: str, chunks: list[DocumentChunk]) -> None:
        """Replace every chunk stored for `doc_id` with `chunks`."""

    def search(
        self,
        query_embedding: list[float],
        k: int,
        min_score: float | None = None,
    ) -> list[ScoredChunk]:
        """Return the `k` most similar chunks, best first."""

    def __len__(self) -> int:
        """Number of stored chunks."""


@dataclass(frozen=True, slots=True)
class _StoredChunk:
    chunk: DocumentChunk
    sequence: int


class InMemoryVectorStore:
    """Copy-on-write chunk store.

    Writers build a new snapshot under a lock and swap it in with a single
    assignment; readers take no lock and always see a complete snapshot, so a
    document is observed with either all of its old chunks or all of its new
    ones. Every stored chunk gets a sequence number at ingestion, which breaks
    similarity ties in ingestion order.
    """

    def __init__(self) -> None:
        self._documents: dict[str, tuple[_StoredChunk, ...]] = {}
        self._snapshot: tuple[_StoredChunk, ...] = ()
        self._sequence = count()
        self._write_lock = threading.Lock()

    def replace_document(self, doc_id: str, chunks: list[DocumentChunk]) -> None:
        if any(chunk.doc_id != doc_id for chunk in chunks):
            raise ValueError(f"All chunks must belong to document {doc_id}")
        with self._write_lock:
            documents = dict(self._documents)
            documents.pop(doc_id, None)
            if chunks:
                documents[doc_id] = tuple(
                    _StoredChunk(chunk=chunk, sequence=next(self._sequence))
                    for chunk in chunks
                )
            self._documents = documents
            self._snapshot = tuple(
                sorted(
                    (stored for group in documents.values() for stored in group),
                    key=lambda stored: stored.sequence,
                )
            )

    def remove_document(self, doc_id: str) -> None:
        self.replace_document(doc_id, [])

    def chunks(self, doc_id: str | None = None) -> list[DocumentChunk]:
        snapshot = self._snapshot
        return [
            stored.chunk
            for stored in snapshot
            if doc_id is None or stored.chunk.doc_id == doc_id
        ]

    def search(
        self,
        query_embedding: list[float],
        k: int,
        min_score: float | None = None,
    ) -> list[ScoredChunk]:
        if k < 0:
            raise ValueError(f"k must be >= 0, got {k}")
        snapshot = self._snapshot
        scored = [
            (_cosine_similarity(query_embedding, stored.chunk.embedding), stored)
            for stored in snapshot
        ]
        if min_score is not None:
            scored = [item for item in scored if item[0] >= min_score]
        ranked = sorted(scored, key=lambda item: (-item[0], item[1].sequence))
        return [
            ScoredChunk(chunk=stored.chunk, score=score, rank=i + 1)
            for i, (score, stored) in enumerate(ranked[:k])
        ]

    def __len__(self) -> int:
        return len(self._snapshot)


def _cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
