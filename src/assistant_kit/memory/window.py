"""Bounded chat memory, one window per conversation session."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

from assistant_kit.config import MemoryConfig
from assistant_kit.types import ConversationTurn


class ChatMemoryWindow:
    """FIFO window over the most recent `max_messages` turns.

    `append` is the only mutator. When the window is full the oldest turn is
    evicted; survivors keep their order.
    """

    def __init__(self, max_messages: int) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be >= 1")
        self.max_messages = max_messages
        self._turns: deque[ConversationTurn] = deque(maxlen=max_messages)

    def append(self, turn: ConversationTurn) -> None:
        self._turns.append(turn)

    def snapshot(self) -> tuple[ConversationTurn, ...]:
        """Immutable copy of the window, oldest turn first."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)


@dataclass(slots=True)
class _Session:
    window: ChatMemoryWindow
    lock: threading.Lock


class ChatMemoryStore:
    """Hands out one `ChatMemoryWindow` and one lock per session id.

    Sessions share nothing. The lock lets callers keep at most one
    invocation in flight per session; it lives as long as the store, so
    clearing a session never lets two invocations run on it at once.
    """

    def __init__(self, config: MemoryConfig) -> None:
        self.config = config
        self._sessions: dict[str, _Session] = {}
        self._guard = threading.Lock()

    def window(self, session_id: str) -> ChatMemoryWindow:
        return self._session(session_id).window

    def session_lock(self, session_id: str) -> threading.Lock:
        return self._session(session_id).lock

    def clear(self, session_id: str) -> None:
        """Forget a session's turns once no invocation is running on it."""

        with self._guard:
            session = self._sessions.get(session_id)
        if session is None:
            return
        with session.lock, self._guard:
            self._sessions[session_id] = _Session(
                window=ChatMemoryWindow(self.config.max_messages), lock=session.lock
            )

    def sessions(self) -> list[str]:
        with self._guard:
            return list(self._sessions)

    def _session(self, session_id: str) -> _Session:
        with self._guard:
            session = self._sessions.get(session_id)
            if session is None:
                session = _Session(
                    window=ChatMemoryWindow(self.config.max_messages),
                    lock=threading.Lock(),
                )
                self._sessions[session_id] = session
            return session
