"""Request-scoped dependencies shared by the routers."""
from __future__ import annotations

from fastapi import Header, HTTPException, Request

from powerup.application import Services
from powerup.domain import Identity

DEFAULT_SESSION = "default"


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_identity(
    request: Request,
    x_session_id: str | None = Header(default=None),
    x_employee_id: str | None = Header(default=None),
    x_display_name: str | None = Header(default=None),
) -> Identity:
    """Identity from the request headers, falling back to what the session stored."""

    services = get_services(request)
    session_id = (x_session_id or "").strip() or DEFAULT_SESSION
    stored = services.session.get(session_id)
    return Identity(
        session_id=session_id,
        employee_id=(x_employee_id or "").strip() or stored.employee_id,
        display_name=(x_display_name or "").strip() or stored.display_name,
    )


def require_employee(identity: Identity) -> Identity:
    if not identity.employee_id:
        raise HTTPException(status_code=401, detail="employee id is required")
    return identity


def require_admin(services: Services, identity: Identity) -> Identity:
    if not services.admin_filter.is_admin(identity):
        raise HTTPException(status_code=403, detail="admin access required")
    return identity
