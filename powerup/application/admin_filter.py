"""Admin-selected employee scope shared by every view of a session."""
from __future__ import annotations

import logging
from typing import Sequence

from powerup.core.events import EventBus, ScopeChanged
from powerup.core.rows import find_column, text
from powerup.core.settings import AdminAllowlist
from powerup.domain import ALL_SCOPE, FilterState, Identity, Row
from powerup.infrastructure.sessions import ADMIN_FILTER_KEY, SessionStore

logger = logging.getLogger(__name__)

NAME_COLUMNS = ("Display Name", "Employee Name", "Name", "Submitted By")


class AdminFilterBroadcast:
    """Two states: ``ALL`` (no restriction) or scoped to one display name.

    The persisted value is not checked against the employee list, so a
    scoped name may be stale; it then simply matches no rows. Callers who
    are not on the admin allowlist always observe ``ALL``.
    """

    def __init__(self, sessions: SessionStore, allowlist: AdminAllowlist, bus: EventBus) -> None:
        self._sessions = sessions
        self._allowlist = allowlist
        self._bus = bus

    def is_admin(self, identity: Identity) -> bool:
        return self._allowlist.is_admin(identity.employee_id)

    def get_scope(self, identity: Identity) -> FilterState:
        if not self.is_admin(identity):
            return FilterState()
        stored = text(self._sessions.get(identity.session_id, ADMIN_FILTER_KEY))
        return FilterState(scope=stored or ALL_SCOPE)

    def set_scope(self, identity: Identity, value: str | None) -> FilterState:
        scope = text(value) or ALL_SCOPE
        self._sessions.set(identity.session_id, ADMIN_FILTER_KEY, scope)
        notified = self._bus.publish(ScopeChanged(session_id=identity.session_id, scope=scope))
        logger.info("admin scope for session %s set to %r (%d listeners)", identity.session_id, scope, notified)
        return FilterState(scope=scope)

    def clear_scope(self, identity: Identity) -> FilterState:
        return self.set_scope(identity, ALL_SCOPE)

    def apply_scope(
        self,
        identity: Identity,
        rows: Sequence[Row],
        candidate_columns: Sequence[str] = NAME_COLUMNS,
    ) -> list[Row]:
        return apply_scope(self.get_scope(identity), rows, candidate_columns)


def apply_scope(state: FilterState, rows: Sequence[Row], candidate_columns: Sequence[str]) -> list[Row]:
    """Keep rows whose first present name column equals the scoped name."""

    if state.is_all:
        return list(rows)
    column = find_column(rows, candidate_columns)
    if column is None:
        return list(rows)
    wanted = text(state.scope)
    return [row for row in rows if text(row.get(column)) == wanted]
