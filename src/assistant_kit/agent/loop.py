"""Tool dispatch loop: model call, tool call, repeat until a final answer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from assistant_kit.agent.protocol import format_tool_call, parse_tool_call, tool_instructions
from assistant_kit.agent.registry import ToolRegistry
from assistant_kit.backends.base import ModelBackend
from assistant_kit.errors import BackendUnavailableError, ToolLoopExceededError
from assistant_kit.types import ConversationContext, ConversationTurn, ToolTrace

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    MODEL_RESPONDED = "model_responded"
    TOOL_REQUESTED = "tool_requested"
    TOOL_EXECUTED = "tool_executed"
    FINALIZED = "finalized"


@dataclass(slots=True)
class LoopOutcome:
    """Final answer plus every turn the exchange produced, in order."""

    answer: str
    transcript: list[ConversationTurn] = field(default_factory=list)
    round_trips: int = 0
    states: list[LoopState] = field(default_factory=list)
    tool_traces: list[ToolTrace] = field(default_factory=list)


class ToolDispatchLoop:
    """Drives one exchange between the model and the registered tools.

    Each tool request counts as one round trip. The loop fails with
    `ToolLoopExceededError` when the model asks for its
    `max_round_trips`-th tool, so any shorter sequence of requests reaches a
    final answer. With an empty registry the loop is a single model call.
    """

    def __init__(
        self,
        backend: ModelBackend,
        tool_registry: ToolRegistry | None = None,
        *,
        max_round_trips: int = 5,
    ) -> None:
        if max_round_trips < 1:
            raise ValueError("max_round_trips must be >= 1")
        self.backend = backend
        self.tool_registry = tool_registry or ToolRegistry()
        self.max_round_trips = max_round_trips

    def run(
        self,
        prompt: str,
        *,
        history: tuple[ConversationTurn, ...] = (),
        system: str | None = None,
    ) -> LoopOutcome:
        has_tools = len(self.tool_registry) > 0
        if has_tools:
            instructions = tool_instructions(self.tool_registry.specs())
            system = f"{system}\n\n{instructions}" if system else instructions

        outcome = LoopOutcome(answer="")
        state = LoopState.AWAITING_MODEL

        while True:
            outcome.states.append(state)
            context = ConversationContext(
                system=system, history=history, scratchpad=tuple(outcome.transcript)
            )
            response = self.backend.generate(prompt, context)
            if response is None:
                raise BackendUnavailableError(
                    "Model backend returned no response",
                    backend=type(self.backend).__name__,
                )
            state = LoopState.MODEL_RESPONDED
            outcome.states.append(state)
            logger.debug("Model responded (%d chars)", len(response))

            request = parse_tool_call(response) if has_tools else None
            if request is None:
                outcome.answer = response
                outcome.transcript.append(ConversationTurn.assistant(response))
                outcome.states.append(LoopState.FINALIZED)
                return outcome

            state = LoopState.TOOL_REQUESTED
            outcome.states.append(state)
            outcome.round_trips += 1
            if outcome.round_trips >= self.max_round_trips:
                raise ToolLoopExceededError(self.max_round_trips)

            spec = self.tool_registry.resolve(request.name)
            logger.debug("Executing tool %s (round trip %d)", spec.name, outcome.round_trips)
            result, trace = self.tool_registry.execute_traced(spec.name, request.arguments)
            outcome.tool_traces.append(trace)

            outcome.transcript.append(ConversationTurn.assistant(format_tool_call(request)))
            outcome.transcript.append(ConversationTurn.tool(spec.name, result))
            state = LoopState.TOOL_EXECUTED
            outcome.states.append(state)
            state = LoopState.AWAITING_MODEL
