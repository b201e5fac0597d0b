from __future__ import annotations

from fastapi import APIRouter, Depends

from powerup.application import Services
from powerup.domain import Identity
from powerup.routes.deps import get_identity, get_services, require_employee

router = APIRouter(prefix="/session", tags=["session"])


@router.get("")
async def get_session(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_employee(identity)
    return await services.session.init_header(identity)


@router.post("/logout")
async def logout(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    services.session.logout(identity.session_id)
    return {"session_id": identity.session_id, "logged_out": True}
