from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from powerup.application import Services
from powerup.routes.deps import get_services

router = APIRouter(prefix="/sheets", tags=["sheets"])


@router.get("/{key}")
async def get_sheet(
    key: str,
    force: bool = Query(default=False),
    services: Services = Depends(get_services),
) -> dict:
    rows = await services.cache.get(key, force=force)
    entry = services.cache.peek(key)
    return {
        "key": services.registry.key_for(key),
        "fetched_at": entry.fetched_at.isoformat() if entry and entry.fetched_at else None,
        "count": len(rows),
        "rows": rows,
    }


@router.delete("/{key}/cache")
async def invalidate_sheet(key: str, services: Services = Depends(get_services)) -> dict:
    services.cache.invalidate(key)
    return {"key": services.registry.key_for(key), "invalidated": True}
