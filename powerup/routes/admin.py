from __future__ import annotations

from fastapi import APIRouter, Depends

from powerup.application import Services
from powerup.core.schema import ScopeUpdate
from powerup.domain import Identity
from powerup.routes.deps import get_identity, get_services, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


def _scope_payload(services: Services, identity: Identity) -> dict:
    state = services.admin_filter.get_scope(identity)
    return {"scope": state.scope, "is_all": state.is_all, "is_admin": services.admin_filter.is_admin(identity)}


@router.get("/scope")
async def get_scope(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    return _scope_payload(services, identity)


@router.put("/scope")
async def set_scope(
    payload: ScopeUpdate,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_admin(services, identity)
    services.admin_filter.set_scope(identity, payload.scope)
    return _scope_payload(services, identity)


@router.delete("/scope")
async def clear_scope(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_admin(services, identity)
    services.admin_filter.clear_scope(identity)
    return _scope_payload(services, identity)


@router.get("/employees")
async def list_employees(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_admin(services, identity)
    items = await services.dashboard.employee_directory()
    return {"items": items}
