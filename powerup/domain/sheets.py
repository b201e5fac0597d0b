"""Domain entities for fetched sheets and the values derived from them."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

Row = dict[str, Any]

ALL_SCOPE = "__ALL__"


@dataclass(slots=True, frozen=True)
class Column:
    title: str
    options: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class Sheet:
    """A remote tabular dataset as returned by the sheet API."""

    id: str
    columns: tuple[Column, ...]
    rows: tuple[Any, ...]

    @property
    def titles(self) -> list[str]:
        return [column.title for column in self.columns]


@dataclass(slots=True)
class CacheEntry:
    """Indexed rows for one sheet key, plus the fetch currently filling it."""

    key: str
    rows: list[Row] = field(default_factory=list)
    fetched_at: datetime | None = None
    in_flight: asyncio.Future | None = None

    @property
    def is_present(self) -> bool:
        return self.fetched_at is not None


@dataclass(slots=True, frozen=True)
class GoalBand:
    level: str
    min: float
    max: float


@dataclass(slots=True)
class RollupResult:
    total: float = 0.0
    groups: dict[str, float] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class FilterState:
    scope: str = ALL_SCOPE

    @property
    def is_all(self) -> bool:
        return self.scope == ALL_SCOPE


@dataclass(slots=True, frozen=True)
class Identity:
    """The precomputed caller identity carried on every request."""

    session_id: str
    employee_id: str = ""
    display_name: str = ""
