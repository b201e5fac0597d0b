from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from powerup.application import Services
from powerup.application.squads import CATEGORIES
from powerup.core.errors import DuplicateMemberError
from powerup.core.schema import MemberCreate, SquadCreate
from powerup.domain import Identity
from powerup.routes.deps import get_identity, get_services, require_employee

router = APIRouter(prefix="/squads", tags=["squads"])


@router.get("")
async def list_squads(
    category: str | None = Query(default=None),
    active_only: bool = Query(default=False),
    mine: bool = Query(default=False),
    q: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    items = await services.squads.list_squads(
        identity,
        category=category,
        active_only=active_only,
        mine=mine,
        query=q,
    )
    return {"count": len(items), "categories": list(CATEGORIES), "items": items}


@router.get("/{squad_id}")
async def get_squad(
    squad_id: str,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    return await services.squads.squad_detail(identity, squad_id)


@router.post("")
async def create_squad(
    payload: SquadCreate,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_employee(identity)
    outcome = await services.squad_writer.create_squad(identity, payload)
    return outcome.model_dump()


@router.post("/{squad_id}/members")
async def add_member(
    squad_id: str,
    payload: MemberCreate,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_employee(identity)
    detail = await services.squads.squad_detail(identity, squad_id)
    if not detail["can_add"]:
        raise HTTPException(status_code=403, detail="only admins and squad leaders can add members")
    try:
        outcome = await services.squad_writer.add_member(identity, detail["id"], payload)
    except DuplicateMemberError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return outcome.model_dump()
