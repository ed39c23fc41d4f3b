from typing import Any

import pytest
from langchain_core.language_models import BaseChatModel, FakeListChatModel
from langchain_core.messages import BaseMessage
from langchain_core.outputs import ChatResult
from pydantic import ConfigDict

from assistant_kit.backends.langchain_chat import LangChainChatBackend
from assistant_kit.errors import BackendTimeoutError, BackendUnavailableError, ErrorCategory
from assistant_kit.types import ConversationContext, ConversationTurn


class FailingChat(BaseChatModel):
    """Chat model whose every call raises the configured error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: Exception
    calls: int = 0

    @property
    def _llm_type(self) -> str:
        return "failing"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        self.calls += 1
        raise self.error


class ReadTimeout(Exception):
    pass


def test_timeouts_become_backend_timeout_errors() -> None:
    for error in (TimeoutError("deadline exceeded"), ReadTimeout("socket read")):
        llm = FailingChat(error=error)
        backend = LangChainChatBackend(llm, name="failing")

        with pytest.raises(BackendTimeoutError) as exc_info:
            backend.generate("Hi", ConversationContext())

        assert exc_info.value.category is ErrorCategory.BACKEND
        assert exc_info.value.__cause__ is error
        assert llm.calls == 1


def test_other_failures_become_backend_unavailable_errors() -> None:
    error = RuntimeError("connection refused")
    llm = FailingChat(error=error)
    backend = LangChainChatBackend(llm, name="failing")

    with pytest.raises(BackendUnavailableError) as exc_info:
        backend.generate("Hi", ConversationContext())

    assert exc_info.value.category is ErrorCategory.BACKEND
    assert exc_info.value.__cause__ is error
    assert "connection refused" in str(exc_info.value)
    assert llm.calls == 1


def test_successful_call_returns_message_text() -> None:
    backend = LangChainChatBackend(FakeListChatModel(responses=["done"]))
    context = ConversationContext(
        system="Be brief.",
        history=(ConversationTurn.user("hi"), ConversationTurn.assistant("hello")),
    )

    assert backend.generate("next", context) == "done"
    assert backend.name == "FakeListChatModel"
