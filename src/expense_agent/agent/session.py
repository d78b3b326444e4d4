"""Per-session chat history kept in process memory."""

from __future__ import annotations

import threading
import uuid

from expense_agent.types import ChatTurn


class SessionStore:
    """Maps a session id to its own append-only history.

    Histories live for the process lifetime only. Reads return copies so a
    caller can never mutate a stored history in place.
    """

    def __init__(self) -> None:
        # Unbounded: no eviction or per-session cap. Any caller-supplied id
        # creates an entry that lives until the process exits.
        self._histories: dict[str, list[ChatTurn]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return str(uuid.uuid4())

    def history(self, session_id: str) -> list[ChatTurn]:
        with self._lock:
            return list(self._histories.get(session_id, ()))

    def append(self, session_id: str, *turns: ChatTurn) -> None:
        """Append turns atomically with respect to other sessions' writers."""
        with self._lock:
            self._histories.setdefault(session_id, []).extend(turns)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._histories

    def __len__(self) -> int:
        with self._lock:
            return len(self._histories)
