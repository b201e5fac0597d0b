from __future__ import annotations

from powerup.application.admin_filter import AdminFilterBroadcast
from powerup.application.goals import find_employee, level_of
from powerup.core.rows import pick, text
from powerup.domain import Identity
from powerup.infrastructure import SheetCache
from powerup.infrastructure.sessions import DISPLAY_NAME_KEY, EMPLOYEE_ID_KEY, LEVEL_KEY, SessionStore

DISPLAY_NAME_COLUMNS = ("Display Name", "Employee Name", "Name")


class SessionService:
    """Identity, resolved level and admin scope for one browser session."""

    def __init__(self, sessions: SessionStore, cache: SheetCache, admin_filter: AdminFilterBroadcast) -> None:
        self._sessions = sessions
        self._cache = cache
        self._admin_filter = admin_filter

    def save(self, identity: Identity) -> None:
        self._sessions.set(identity.session_id, EMPLOYEE_ID_KEY, identity.employee_id)
        self._sessions.set(identity.session_id, DISPLAY_NAME_KEY, identity.display_name)

    def get(self, session_id: str) -> Identity:
        return Identity(
            session_id=session_id,
            employee_id=self._sessions.get(session_id, EMPLOYEE_ID_KEY) or "",
            display_name=self._sessions.get(session_id, DISPLAY_NAME_KEY) or "",
        )

    async def init_header(self, identity: Identity) -> dict[str, object]:
        """Resolve display name and level from the employee sheet and persist both."""

        self.save(identity)
        employees = await self._cache.get("EMPLOYEE_MASTER")
        row = find_employee(employees, identity.employee_id) or {}

        display_name = identity.display_name or text(pick(row, DISPLAY_NAME_COLUMNS)) or identity.employee_id
        level = level_of(row)
        self._sessions.set(identity.session_id, DISPLAY_NAME_KEY, display_name)
        self._sessions.set(identity.session_id, LEVEL_KEY, level)

        is_admin = self._admin_filter.is_admin(identity)
        if is_admin:
            level_label = "Admin"
        elif level.startswith("LVL"):
            level_label = level
        else:
            level_label = f"Level {level}"

        return {
            "employee_id": identity.employee_id,
            "display_name": display_name,
            "level": level,
            "level_label": level_label,
            "is_admin": is_admin,
            "admin_scope": self._admin_filter.get_scope(identity).scope,
        }

    def logout(self, session_id: str) -> None:
        self._sessions.clear(session_id)
