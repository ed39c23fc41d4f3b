import pytest

from assistant_kit.config import RetrievalConfig
from assistant_kit.ingest.embedder import HashingEmbedder
from assistant_kit.retrieval.retriever import Retriever
from assistant_kit.retrieval.vector_store import InMemoryVectorStore
from assistant_kit.types import DocumentChunk


def _chunk(doc_id: str, ordinal: int, text: str, embedding: tuple[float, ...]) -> DocumentChunk:
    return DocumentChunk(
        chunk_id=f"{doc_id}-chunk-{ordinal:04d}",
        doc_id=doc_id,
        ordinal=ordinal,
        text=text,
        embedding=embedding,
        token_count=len(text.split()),
    )


def test_reingesting_a_document_replaces_its_chunks() -> None:
    store = InMemoryVectorStore()
    store.replace_document(
        "doc1",
        [_chunk("doc1", 0, "old one", (1.0, 0.0)), _chunk("doc1", 1, "old two", (0.0, 1.0))],
    )
    store.replace_document("doc2", [_chunk("doc2", 0, "unrelated", (1.0, 1.0))])

    store.replace_document("doc1", [_chunk("doc1", 0, "new", (1.0, 0.0))])

    assert [chunk.text for chunk in store.chunks("doc1")] == ["new"]
    assert [chunk.text for chunk in store.chunks("doc2")] == ["unrelated"]
    assert len(store) == 2


def test_ties_are_broken_by_ingestion_order() -> None:
    store = InMemoryVectorStore()
    store.replace_document("b", [_chunk("b", 0, "second", (0.0, 1.0))])
    store.replace_document("a", [_chunk("a", 0, "first", (0.0, 1.0))])
    store.replace_document("c", [_chunk("c", 0, "other", (1.0, 0.0))])

    hits = store.search([0.0, 2.0], k=3)

    assert [hit.chunk.doc_id for hit in hits] == ["b", "a", "c"]
    assert [hit.rank for hit in hits] == [1, 2, 3]
    assert hits[0].score == pytest.approx(1.0)
    assert hits[2].score == pytest.approx(0.0)
    assert [hit.chunk.doc_id for hit in store.search([0.0, 2.0], k=3)] == ["b", "a", "c"]


def test_search_honours_top_k_and_min_score() -> None:
    store = InMemoryVectorStore()
    store.replace_document(
        "doc",
        [
            _chunk("doc", 0, "x", (1.0, 0.0)),
            _chunk("doc", 1, "xy", (1.0, 1.0)),
            _chunk("doc", 2, "y", (0.0, 1.0)),
        ],
    )

    assert [hit.chunk.text for hit in store.search([1.0, 0.0], k=2)] == ["x", "xy"]
    assert [hit.chunk.text for hit in store.search([1.0, 0.0], k=5, min_score=0.5)] == [
        "x",
        "xy",
    ]


def test_chunks_must_belong_to_the_replaced_document() -> None:
    store = InMemoryVectorStore()

    with pytest.raises(ValueError):
        store.replace_document("doc1", [_chunk("doc2", 0, "misfiled", (1.0,))])


def test_empty_corpus_returns_no_hits_without_embedding() -> None:
    class _FailingEmbedder(HashingEmbedder):
        def embed(self, text: str) -> list[float]:
            raise AssertionError("query should not be embedded")

    retriever = Retriever(InMemoryVectorStore(), _FailingEmbedder(), RetrievalConfig(top_k=3))

    assert retriever.retrieve("anything") == []


def test_removed_document_is_gone() -> None:
    store = InMemoryVectorStore()
    store.replace_document("doc1", [_chunk("doc1", 0, "text", (1.0,))])

    store.remove_document("doc1")

    assert len(store) == 0
    assert store.search([1.0], k=1) == []


def test_top_k_bounds_the_result_size() -> None:
    store = InMemoryVectorStore()
    for i in range(5):
        store.replace_document(f"doc{i}", [_chunk(f"doc{i}", 0, f"alpha {i}", (1.0, float(i)))])
    retriever = Retriever(store, HashingEmbedder(dimension=2), RetrievalConfig(top_k=3))

    assert len(retriever.retrieve("alpha")) == 3
    assert retriever.retrieve("alpha", top_k=0) == []
    assert len(retriever.retrieve("alpha", top_k=1)) == 1
    assert len(retriever.retrieve("alpha", top_k=10)) == 5
    with pytest.raises(ValueError):
        retriever.retrieve("alpha", top_k=-1)
    with pytest.raises(ValueError):
        store.search([1.0, 0.0], k=-1)
