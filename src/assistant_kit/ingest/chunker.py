"""Sliding-window chunking with paragraph-aware boundaries."""

from __future__ import annotations

import re
from bisect import bisect_left

from assistant_kit.config import ChunkingConfig

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


class SlidingWindowChunker:
    """Splits text into overlapping windows of at most `chunk_size` tokens.

    Design notes:
    1. Token windows.
       Text is tokenized into words and punctuation marks, keeping each
       token's character span. A chunk is the slice of the original text
       from its first to its last token, so whitespace and line breaks
       survive chunking unchanged.

    2. Paragraph-aware cut points.
       When a window would end mid-document, its end is pulled back to the
       latest paragraph break that still leaves the window at least half
       full. Paragraphs therefore stay whole whenever they fit.

    3. Overlap.
       The next window starts `chunk_overlap` tokens before the previous
       one ended, keeping cross-chunk context available for retrieval.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def split(self, text: str) -> list[str]:
        spans = [match.span() for match in _TOKEN_PATTERN.finditer(text)]
        if not spans:
            return []

        starts = [start for start, _ in spans]
        boundaries = [
            bisect_left(starts, match.end()) for match in _PARAGRAPH_BREAK.finditer(text)
        ]

        size = self.config.chunk_size
        overlap = self.config.chunk_overlap
        chunks: list[str] = []
        start = 0
        total = len(spans)

        while start < total:
            end = min(start + size, total)
            if end < total:
                end = self._paragraph_cut(boundaries, start, end)
            chunks.append(text[spans[start][0] : spans[end - 1][1]])
            if end >= total:
                break
            start = max(end - overlap, start + 1)

        return chunks

    def _paragraph_cut(self, boundaries: list[int], start: int, end: int) -> int:
        floor = start + self.config.chunk_size // 2
        candidates = [b for b in boundaries if floor < b <= end]
        return candidates[-1] if candidates else end

    @staticmethod
    def count_tokens(text: str) -> int:
        return len(_TOKEN_PATTERN.findall(text))
