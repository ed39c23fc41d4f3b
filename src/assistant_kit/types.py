"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One message in a conversation. Immutable once created."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=_utc_now)
    name: str | None = None

    @classmethod
    def user(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def tool(cls, name: str, content: str) -> "ConversationTurn":
        return cls(role=Role.TOOL, content=content, name=name)


@dataclass(frozen=True, slots=True)
class ConversationContext:
    """Everything a model backend sees besides the current prompt.

    `history` holds remembered turns from earlier exchanges; `scratchpad`
    holds the tool requests and tool results of the exchange in progress.
    """

    system: str | None = None
    history: tuple[ConversationTurn, ...] = ()
    scratchpad: tuple[ConversationTurn, ...] = ()


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """A raw document handed to ingestion."""

    doc_id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DocumentChunk:
    """A chunked, embedded section of a source document."""

    chunk_id: str
    doc_id: str
    ordinal: int
    text: str
    embedding: tuple[float, ...]
    token_count: int
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ScoredChunk:
    """A retrieval result with similarity score and rank."""

    chunk: DocumentChunk
    score: float
    rank: int = 0


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
