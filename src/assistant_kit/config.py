"""Configuration models for assistants, memory and the RAG pipeline."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ChunkingConfig(BaseModel):
    """Configures sliding-window chunking at ingestion time."""

    chunk_size: int = Field(default=300, ge=8)
    chunk_overlap: int = Field(default=30, ge=0)

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self


class RetrievalConfig(BaseModel):
    """Configures query-time retrieval and context augmentation."""

    top_k: int = Field(default=3, ge=1)
    min_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    context_header: str = "Answer using the following information:"


class MemoryConfig(BaseModel):
    """Configures the per-session chat memory window.

    `max_messages` has no default: every assistant that remembers must say
    how much it remembers.
    """

    max_messages: int = Field(ge=1)


class AssistantConfig(BaseModel):
    """Configures the tool dispatch loop and response handling."""

    max_tool_round_trips: int = Field(default=5, ge=1)
    append_format_instructions: bool = True
