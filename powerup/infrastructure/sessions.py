"""Session-scoped key/value storage."""
from __future__ import annotations

from typing import Protocol

EMPLOYEE_ID_KEY = "empID"
DISPLAY_NAME_KEY = "displayName"
LEVEL_KEY = "currentLevel"
ADMIN_FILTER_KEY = "pu.adminEmployeeFilter"


class SessionStore(Protocol):
    """Persistence contract for per-session values."""

    def get(self, session_id: str, key: str) -> str | None: ...

    def set(self, session_id: str, key: str, value: str) -> None: ...

    def delete(self, session_id: str, key: str) -> None: ...

    def clear(self, session_id: str) -> None: ...

    def reset(self) -> None: ...


class InMemorySessionStore:
    """Values live until the session logs out or the process restarts."""

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, str]] = {}

    def get(self, session_id: str, key: str) -> str | None:
        return self._sessions.get(session_id, {}).get(key)

    def set(self, session_id: str, key: str, value: str) -> None:
        self._sessions.setdefault(session_id, {})[key] = value

    def delete(self, session_id: str, key: str) -> None:
        values = self._sessions.get(session_id)
        if values is not None:
            values.pop(key, None)

    def clear(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def reset(self) -> None:
        self._sessions.clear()
