from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ColumnPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    options: list[str] = Field(default_factory=list)


class SheetPayload(BaseModel):
    """Wire shape of ``GET {base}/sheet/{sheetId}``."""

    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    columns: list[ColumnPayload] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)


class ScopeUpdate(BaseModel):
    scope: str | None = None


class SquadCreate(BaseModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    objective: str = Field(min_length=1)
    leader_id: str | None = None
    leader_name: str | None = None
    active: bool = True


class MemberCreate(BaseModel):
    employee_id: str = Field(min_length=1)
    role: str = "Member"
    start_date: str | None = None
    active: bool = True


class WriteOutcome(BaseModel):
    status: Literal["confirmed", "unconfirmed"]
    identifier: str | None = None
    message: str
