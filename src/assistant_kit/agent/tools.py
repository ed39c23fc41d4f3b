"""Built-in tool implementations for assistants."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from assistant_kit.agent.registry import ToolRegistry, ToolSpec
from assistant_kit.rag import RagPipeline


class StringLengthInput(BaseModel):
    text: str


class AddInput(BaseModel):
    a: float
    b: float


class SquareRootInput(BaseModel):
    x: float = Field(ge=0.0)


class SearchToolInput(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=3, ge=1, le=10)


def register_builtin_tools(registry: ToolRegistry, rag: RagPipeline | None = None) -> None:
    """Register the default tool set.

    Tools:
    - `string_length`: number of characters in a string.
    - `add`: sum of two numbers.
    - `sqrt`: square root of a non-negative number.
    - `internal_search`: cited chunks from the RAG corpus, when one is given.
    """

    def _string_length(input_data: StringLengthInput) -> str:
        return str(len(input_data.text))

    def _add(input_data: AddInput) -> str:
        return _format_number(input_data.a + input_data.b)

    def _sqrt(input_data: SquareRootInput) -> str:
        return _format_number(math.sqrt(input_data.x))

    registry.register(
        ToolSpec(
            name="string_length",
            description="Count the characters in a string, including spaces.",
            args_schema=StringLengthInput,
            handler=_string_length,
            tags=["calculator"],
        )
    )
    registry.register(
        ToolSpec(
            name="add",
            description="Add two numbers.",
            args_schema=AddInput,
            handler=_add,
            tags=["calculator"],
        )
    )
    registry.register(
        ToolSpec(
            name="sqrt",
            description="Square root of a non-negative number.",
            args_schema=SquareRootInput,
            handler=_sqrt,
            tags=["calculator"],
        )
    )

    if rag is None:
        return

    def _search(input_data: SearchToolInput) -> str:
        hits = rag.retrieve(input_data.query, top_k=input_data.top_k)
        lines = []
        for hit in hits:
            snippet = _truncate(hit.chunk.text.replace("\n", " "), 220)
            lines.append(f"[{hit.chunk.chunk_id}] score={hit.score:.4f} {snippet}")
        if not lines:
            return "NO_RESULTS"
        return "\n".join(lines)

    registry.register(
        ToolSpec(
            name="internal_search",
            description="Search ingested documents and return cited chunks.",
            args_schema=SearchToolInput,
            handler=_search,
            tags=["retrieval", "rag"],
        )
    )


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return f"{value:.6g}"


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
