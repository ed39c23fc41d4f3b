"""Assistant proxy: one model-backed callable per contract method."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import nullcontext
from typing import Any

from assistant_kit.agent.contract import AssistantContract, MethodSpec
from assistant_kit.agent.loop import LoopOutcome, ToolDispatchLoop
from assistant_kit.agent.registry import ToolRegistry
from assistant_kit.backends.base import ModelBackend
from assistant_kit.config import AssistantConfig
from assistant_kit.errors import AssistantError
from assistant_kit.memory.window import ChatMemoryStore
from assistant_kit.obs.tracing import Timer, TraceStore
from assistant_kit.output.parser import StructuredOutputParser
from assistant_kit.output.shapes import ParsedValue, ValueKind
from assistant_kit.prompt.template import bind_arguments, render
from assistant_kit.rag import RagPipeline
from assistant_kit.types import ConversationTurn, ScoredChunk

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"


class Assistant:
    """Binds an `AssistantContract` to a model backend.

    Every declared method becomes an attribute::

        extractor = Assistant(contract, backend)
        extractor.extract_int("... the answer was forty two.")

    An invocation renders the method's template, optionally prepends
    retrieved context and the session's memory, runs the tool dispatch loop,
    parses the final answer into the declared return shape and, for
    memory-aware methods, commits the exchange to the session window.
    Methods returning text give back the raw answer; every other shape gives
    a `ParsedValue`. Errors propagate unchanged.

    The proxy holds no conversation state itself. Memory lives in the
    `ChatMemoryStore`, one window per session id.
    """

    def __init__(
        self,
        contract: AssistantContract,
        backend: ModelBackend,
        *,
        tools: ToolRegistry | None = None,
        memory: ChatMemoryStore | None = None,
        rag: RagPipeline | None = None,
        parser: StructuredOutputParser | None = None,
        config: AssistantConfig | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        if contract.uses_memory and memory is None:
            raise ValueError(
                f"Contract {contract.name} has memory-aware methods but no memory store"
            )
        if contract.uses_retrieval and rag is None:
            raise ValueError(
                f"Contract {contract.name} has retrieval-augmented methods but no RAG pipeline"
            )

        self.contract = contract
        self.backend = backend
        self.memory = memory
        self.rag = rag
        self.parser = parser or StructuredOutputParser()
        self.config = config or AssistantConfig()
        self.trace_store = trace_store
        self._loop = ToolDispatchLoop(
            backend, tools, max_round_trips=self.config.max_tool_round_trips
        )

    def __getattr__(self, name: str) -> Callable[..., Any]:
        contract = self.__dict__.get("contract")
        if contract is None or name not in contract:
            raise AttributeError(f"{type(self).__name__} has no method {name!r}")
        method = contract[name]

        def _call(*args: Any, session_id: str = DEFAULT_SESSION, **kwargs: Any) -> Any:
            return self.invoke(name, *args, session_id=session_id, **kwargs)

        _call.__name__ = name
        _call.__doc__ = method.description or method.template
        return _call

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self.contract))

    def invoke(
        self,
        method_name: str,
        *args: Any,
        session_id: str = DEFAULT_SESSION,
        **kwargs: Any,
    ) -> str | ParsedValue:
        """Run one method call end to end."""

        method = self.contract[method_name]
        user_prompt = render(method.template, bind_arguments(method.parameters, args, kwargs))

        remembers = method.memory_aware and self.memory is not None
        session_lock = self.memory.session_lock(session_id) if remembers else nullcontext()

        timer = Timer()
        try:
            with session_lock, timer:
                outcome, hits, result = self._run(method, user_prompt, session_id, remembers)
        except AssistantError as exc:
            self._record(method, session_id, user_prompt, None, [], timer, exc)
            raise

        logger.info(
            "%s.%s answered in %.1f ms after %d tool call(s)",
            self.contract.name,
            method.name,
            timer.elapsed_ms,
            outcome.round_trips,
        )
        self._record(method, session_id, user_prompt, outcome, hits, timer, None)
        return result

    def _run(
        self,
        method: MethodSpec,
        user_prompt: str,
        session_id: str,
        remembers: bool,
    ) -> tuple[LoopOutcome, list[ScoredChunk], str | ParsedValue]:
        prompt = user_prompt
        hits: list[ScoredChunk] = []
        if method.retrieval_augmented and self.rag is not None:
            prompt, hits = self.rag.augment(user_prompt)

        if method.return_shape is not ValueKind.TEXT and self.config.append_format_instructions:
            prompt = f"{prompt}\n\n{self.parser.format_instructions(method.return_shape)}"

        window = self.memory.window(session_id) if remembers else None
        history = window.snapshot() if window is not None else ()

        outcome = self._loop.run(prompt, history=history, system=self.contract.system_prompt)

        result: str | ParsedValue = outcome.answer
        if method.return_shape is not ValueKind.TEXT:
            result = self.parser.parse(outcome.answer, method.return_shape)

        if window is not None:
            window.append(ConversationTurn.user(user_prompt))
            for turn in outcome.transcript:
                window.append(turn)
        return outcome, hits, result

    def _record(
        self,
        method: MethodSpec,
        session_id: str,
        prompt: str,
        outcome: LoopOutcome | None,
        hits: list[ScoredChunk],
        timer: Timer,
        error: AssistantError | None,
    ) -> None:
        if self.trace_store is None:
            return
        self.trace_store.create_record(
            assistant=self.contract.name,
            method=method.name,
            session_id=session_id if method.memory_aware else None,
            prompt=prompt,
            answer=outcome.answer if outcome is not None else "",
            latency_ms=timer.elapsed_ms,
            retrieved_chunk_ids=[hit.chunk.chunk_id for hit in hits],
            tool_traces=list(outcome.tool_traces) if outcome is not None else [],
            error=str(error) if error is not None else None,
            error_category=error.category.value if error is not None else None,
        )
