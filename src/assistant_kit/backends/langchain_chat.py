"""Model backend adapter for LangChain chat models."""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from assistant_kit.errors import BackendTimeoutError, BackendUnavailableError
from assistant_kit.types import ConversationContext, ConversationTurn, Role

logger = logging.getLogger(__name__)

_PROMPT = ChatPromptTemplate.from_messages(
    [
        MessagesPlaceholder(variable_name="system", optional=True),
        MessagesPlaceholder(variable_name="chat_history", optional=True),
        ("human", "{input}"),
        MessagesPlaceholder(variable_name="agent_scratchpad", optional=True),
    ]
)


class LangChainChatBackend:
    """Runs prompts through any LangChain `BaseChatModel`.

    Tool turns are sent as human messages labelled with the tool name, since
    the tool-call protocol is textual and vendor tool-message formats are not
    involved.
    """

    def __init__(self, llm: BaseChatModel, *, name: str | None = None) -> None:
        self.llm = llm
        self.name = name or type(llm).__name__

    def generate(self, prompt: str, context: ConversationContext) -> str | None:
        messages = _PROMPT.invoke(
            {
                "system": [SystemMessage(content=context.system)] if context.system else [],
                "chat_history": [_to_message(turn) for turn in context.history],
                "input": prompt,
                "agent_scratchpad": [_to_message(turn) for turn in context.scratchpad],
            }
        )
        try:
            response = self.llm.invoke(messages)
        except TimeoutError as exc:
            raise BackendTimeoutError(str(exc) or "model call timed out", backend=self.name) from exc
        except Exception as exc:
            if "timeout" in type(exc).__name__.lower():
                raise BackendTimeoutError(str(exc), backend=self.name) from exc
            logger.warning("Model backend %s failed: %s", self.name, exc)
            raise BackendUnavailableError(str(exc), backend=self.name) from exc

        if response is None:
            return None
        return _message_text(response)


def _to_message(turn: ConversationTurn) -> BaseMessage:
    if turn.role is Role.USER:
        return HumanMessage(content=turn.content)
    if turn.role is Role.ASSISTANT:
        return AIMessage(content=turn.content)
    return HumanMessage(content=f"Tool result ({turn.name}):\n{turn.content}")


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts).strip()
    return str(content)
