from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from powerup.application import Services
from powerup.application.dashboard import TABLES
from powerup.domain import Identity
from powerup.routes.deps import get_identity, get_services, require_employee

router = APIRouter(prefix="/tables", tags=["tables"])

SortMode = Literal["recent", "owner"]


def _check_kind(kind: str) -> None:
    if kind not in TABLES:
        raise HTTPException(status_code=404, detail=f"unknown table {kind}")


@router.get("/{kind}")
async def get_table(
    kind: str,
    q: str | None = Query(default=None),
    sort: SortMode = Query(default="recent"),
    column: str | None = Query(default=None),
    value: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict:
    _check_kind(kind)
    require_employee(identity)
    try:
        return await services.dashboard.table_view(identity, kind, column=column, value=value, query=q, sort=sort)
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=f"unknown filter column {column}") from exc


@router.get("/{kind}/export")
async def export_table(
    kind: str,
    q: str | None = Query(default=None),
    sort: SortMode = Query(default="recent"),
    column: str | None = Query(default=None),
    value: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> Response:
    _check_kind(kind)
    require_employee(identity)
    try:
        content = await services.dashboard.export_table(
            identity, kind, column=column, value=value, query=q, sort=sort
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=f"unknown filter column {column}") from exc
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{kind}.csv"'},
    )
