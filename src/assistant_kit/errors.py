"""Error taxonomy raised by assistant invocations.

Every error is terminal for the invocation that raised it. The `category`
tells a caller whose fault it was:

- ``CALLER``: the template or the arguments were wrong.
- ``RESPONSE``: the model answered, but the answer could not be used.
- ``BACKEND``: the model or tool layer failed to produce an answer.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    CALLER = "caller"
    RESPONSE = "response"
    BACKEND = "backend"


class AssistantError(Exception):
    """Base class for all assistant invocation failures."""

    category: ErrorCategory = ErrorCategory.BACKEND

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "category": self.category.value,
            "message": str(self),
            **self.details(),
        }


class TemplateBindingError(AssistantError):
    category = ErrorCategory.CALLER

    def __init__(
        self,
        message: str,
        *,
        missing: list[str] | None = None,
        unexpected: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.missing = sorted(missing or [])
        self.unexpected = sorted(unexpected or [])

    def details(self) -> dict[str, Any]:
        return {"missing": self.missing, "unexpected": self.unexpected}


class UnparsableResponseError(AssistantError):
    category = ErrorCategory.RESPONSE

    def __init__(self, message: str, *, raw_text: str, target: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text
        self.target = target

    def details(self) -> dict[str, Any]:
        return {"raw_text": self.raw_text, "target": self.target}


class UnknownToolError(AssistantError):
    category = ErrorCategory.RESPONSE

    def __init__(self, tool_name: str, available: list[str]) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name
        self.available = sorted(available)

    def details(self) -> dict[str, Any]:
        return {"tool_name": self.tool_name, "available": self.available}


class ToolArgumentError(AssistantError):
    category = ErrorCategory.RESPONSE

    def __init__(
        self, tool_name: str, message: str, errors: list[dict[str, Any]] | None = None
    ) -> None:
        super().__init__(f"Invalid arguments for tool {tool_name}: {message}")
        self.tool_name = tool_name
        self.errors = errors or []

    def details(self) -> dict[str, Any]:
        return {"tool_name": self.tool_name, "errors": self.errors}


class ToolLoopExceededError(AssistantError):
    category = ErrorCategory.BACKEND

    def __init__(self, max_round_trips: int) -> None:
        super().__init__(
            f"Model kept requesting tools after {max_round_trips} round trips"
        )
        self.max_round_trips = max_round_trips

    def details(self) -> dict[str, Any]:
        return {"max_round_trips": self.max_round_trips}


class BackendUnavailableError(AssistantError):
    category = ErrorCategory.BACKEND

    def __init__(self, message: str, *, backend: str = "unknown") -> None:
        super().__init__(message)
        self.backend = backend

    def details(self) -> dict[str, Any]:
        return {"backend": self.backend}


class BackendTimeoutError(AssistantError):
    category = ErrorCategory.BACKEND

    def __init__(self, message: str, *, backend: str = "unknown") -> None:
        super().__init__(message)
        self.backend = backend

    def details(self) -> dict[str, Any]:
        return {"backend": self.backend}
