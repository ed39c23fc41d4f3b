"""FastAPI entrypoint: chat, custom-data chat, structured extraction, ingest, traces."""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from assistant_kit.agent.contract import AssistantContract, MethodSpec
from assistant_kit.agent.proxy import Assistant
from assistant_kit.agent.registry import ToolRegistry
from assistant_kit.agent.tools import register_builtin_tools
from assistant_kit.backends.base import ModelBackend
from assistant_kit.backends.langchain_chat import LangChainChatBackend
from assistant_kit.config import AssistantConfig, ChunkingConfig, MemoryConfig, RetrievalConfig
from assistant_kit.errors import AssistantError, BackendTimeoutError, ErrorCategory
from assistant_kit.ingest.embedder import Embedder, HashingEmbedder
from assistant_kit.memory.window import ChatMemoryStore
from assistant_kit.obs.tracing import TraceStore
from assistant_kit.output.shapes import FieldSpec, ParsedValue, RecordShape, ValueKind
from assistant_kit.rag import RagPipeline

_STATUS_BY_CATEGORY = {
    ErrorCategory.CALLER: 400,
    ErrorCategory.RESPONSE: 422,
    ErrorCategory.BACKEND: 502,
}

PERSON_SHAPE = RecordShape(
    name="Person",
    fields={
        "first_name": FieldSpec(kind=ValueKind.TEXT),
        "last_name": FieldSpec(kind=ValueKind.TEXT),
        "birth_date": FieldSpec(kind=ValueKind.DATE, required=False),
    },
)

CHAT_CONTRACT = AssistantContract(
    "Assistant",
    [
        MethodSpec(name="chat", template="{message}", memory_aware=True),
        MethodSpec(
            name="answer_from_documents",
            template="{question}",
            retrieval_augmented=True,
            memory_aware=True,
        ),
        MethodSpec(
            name="extract_person",
            template="Extract information about a person from the following text:\n{text}",
            return_shape=PERSON_SHAPE,
        ),
    ],
    system_prompt="You are a helpful assistant. Answer concisely and accurately.",
)


def _create_backend() -> ModelBackend | None:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None

    from langchain_openai import ChatOpenAI

    model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    return LangChainChatBackend(ChatOpenAI(model=model, temperature=0), name=model)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    session_id: str = Field(default="default", min_length=1)


class IngestRequest(BaseModel):
    path: str
    doc_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SourceSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=3, ge=1, le=20)


def create_app(
    backend: ModelBackend | None = None,
    *,
    embedder: Embedder | None = None,
    max_messages: int = 10,
) -> FastAPI:
    """Wire the default assistant and expose it over HTTP.

    Without a backend the chat endpoints answer 503; ingestion and search
    still work.
    """

    app = FastAPI(title="Assistant Kit", version="0.1.0")

    rag = RagPipeline(
        embedder or HashingEmbedder(),
        chunking=ChunkingConfig(chunk_size=300, chunk_overlap=30),
        retrieval=RetrievalConfig(top_k=3),
    )
    registry = ToolRegistry()
    register_builtin_tools(registry, rag)
    trace_store = TraceStore()
    algo = getattr(backend, "name", type(backend).__name__) if backend else "none"

    assistant = (
        Assistant(
            CHAT_CONTRACT,
            backend,
            tools=registry,
            memory=ChatMemoryStore(MemoryConfig(max_messages=max_messages)),
            rag=rag,
            config=AssistantConfig(max_tool_round_trips=5),
            trace_store=trace_store,
        )
        if backend is not None
        else None
    )

    def _invoke(method: str, request: ChatRequest) -> dict[str, Any]:
        if assistant is None:
            raise HTTPException(status_code=503, detail="Model backend is not configured")
        try:
            result = assistant.invoke(method, request.message, session_id=request.session_id)
        except AssistantError as exc:
            status = 504 if isinstance(exc, BackendTimeoutError) else _STATUS_BY_CATEGORY[exc.category]
            raise HTTPException(status_code=status, detail=exc.to_dict()) from exc
        return _envelope(algo, request.message, result)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "llm_configured": assistant is not None,
            "algo": algo,
            "corpus_chunks": len(rag.store),
        }

    @app.post("/chat")
    def chat(request: ChatRequest) -> dict[str, Any]:
        return _invoke("chat", request)

    @app.post("/chat/custom")
    def chat_custom(request: ChatRequest) -> dict[str, Any]:
        return _invoke("answer_from_documents", request)

    @app.post("/chat/structured")
    def chat_structured(request: ChatRequest) -> dict[str, Any]:
        return _invoke("extract_person", request)

    @app.post("/ingest")
    def ingest(request: IngestRequest) -> dict[str, Any]:
        try:
            chunks = rag.ingest_path(
                request.path,
                doc_id=request.doc_id,
                extra_metadata=request.metadata,
            )
        except (OSError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        return {
            "chunks_created": len(chunks),
            "chunk_ids": [chunk.chunk_id for chunk in chunks],
        }

    @app.post("/sources/search")
    def source_search(request: SourceSearchRequest) -> dict[str, Any]:
        hits = rag.retrieve(request.query, top_k=request.top_k)
        return {
            "items": [
                {
                    "chunk_id": hit.chunk.chunk_id,
                    "doc_id": hit.chunk.doc_id,
                    "score": hit.score,
                    "text": hit.chunk.text,
                    "metadata": hit.chunk.metadata,
                }
                for hit in hits
            ]
        }

    @app.get("/traces")
    def traces(limit: int = 20) -> dict[str, Any]:
        records = [asdict(record) for record in trace_store.list_recent(limit=limit)]
        return {"items": records}

    @app.get("/traces/{trace_id}")
    def trace_detail(trace_id: str) -> dict[str, Any]:
        try:
            record = trace_store.get(trace_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return asdict(record)

    @app.get("/metrics")
    def metrics() -> dict[str, Any]:
        return trace_store.summary()

    return app


def _envelope(algo: str, request: str, result: str | ParsedValue) -> dict[str, Any]:
    return {
        "success": True,
        "message": "AI Response",
        "payload": {
            "algo": algo,
            "request": request,
            "response": _response_rows(result),
        },
    }


def _response_rows(result: str | ParsedValue) -> list[str]:
    if isinstance(result, ParsedValue) and result.kind is ValueKind.RECORD:
        return [f"{name}: {item.render()}" for name, item in result.value.items()]
    text = result.render() if isinstance(result, ParsedValue) else result
    return text.split("\n")


app = create_app(_create_backend())
