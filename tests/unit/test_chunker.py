import pytest
from pydantic import ValidationError

from assistant_kit.config import ChunkingConfig
from assistant_kit.ingest.chunker import SlidingWindowChunker


def test_windows_respect_size_and_overlap() -> None:
    text = " ".join(f"w{i}" for i in range(20))
    chunker = SlidingWindowChunker(ChunkingConfig(chunk_size=8, chunk_overlap=2))

    chunks = chunker.split(text)

    assert chunks == [
        "w0 w1 w2 w3 w4 w5 w6 w7",
        "w6 w7 w8 w9 w10 w11 w12 w13",
        "w12 w13 w14 w15 w16 w17 w18 w19",
    ]
    assert all(chunker.count_tokens(chunk) <= 8 for chunk in chunks)


def test_paragraph_breaks_become_cut_points() -> None:
    text = "a b c d e f\n\ng h i j k l"
    chunker = SlidingWindowChunker(ChunkingConfig(chunk_size=8, chunk_overlap=0))

    assert chunker.split(text) == ["a b c d e f", "g h i j k l"]


def test_short_and_empty_text() -> None:
    chunker = SlidingWindowChunker(ChunkingConfig(chunk_size=8, chunk_overlap=2))

    assert chunker.split("Just a line.") == ["Just a line."]
    assert chunker.split("   \n  ") == []


def test_token_count_includes_punctuation() -> None:
    assert SlidingWindowChunker.count_tokens("Hello, world!") == 4


def test_overlap_must_be_smaller_than_size() -> None:
    with pytest.raises(ValidationError):
        ChunkingConfig(chunk_size=10, chunk_overlap=10)
