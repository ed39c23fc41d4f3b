"""Model backend contract consumed by the assistant proxy."""

from __future__ import annotations

from typing import Protocol

from assistant_kit.types import ConversationContext


class ModelBackend(Protocol):
    """Anything that turns a prompt plus conversation context into text.

    Implementations raise `BackendUnavailableError` or `BackendTimeoutError`
    when no answer can be produced. Returning None is treated as unavailable.
    """

    def generate(self, prompt: str, context: ConversationContext) -> str | None:
        """Generate the model's reply to `prompt`."""
