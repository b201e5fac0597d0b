from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from powerup.application import Services
from powerup.core.rollups import TimeRange
from powerup.domain import Identity
from powerup.routes.deps import get_identity, get_services, require_employee

router = APIRouter(tags=["metrics"])


@router.get("/goals/{employee_id}")
async def get_goal_band(employee_id: str, services: Services = Depends(get_services)) -> dict:
    band = await services.goals.resolve(employee_id)
    return asdict(band)


@router.get("/power-hours")
async def get_power_hours(
    time_range: TimeRange = Query(default="month", alias="range"),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_employee(identity)
    return await services.dashboard.power_hours(identity, time_range)


@router.get("/tokens")
async def get_tokens(
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    require_employee(identity)
    return await services.dashboard.token_total(identity)
