"""Per-employee goal bands joined from the employee and goals sheets."""
from __future__ import annotations

import asyncio

from powerup.core.rows import norm, parse_number, pick, text
from powerup.domain import GoalBand, Row
from powerup.infrastructure import SheetCache

EMPLOYEE_ID_COLUMNS = ("Position ID", "Employee ID")
LEVEL_COLUMNS = ("PowerUp Level (Select)", "PowerUp Level", "Level")
GOAL_LEVEL_COLUMNS = ("Level",)
UNKNOWN_LEVEL = "Unknown"
DEFAULT_MIN_HOURS = 8.0


def find_employee(rows: list[Row], employee_id: str) -> Row | None:
    wanted = norm(employee_id)
    if not wanted:
        return None
    for row in rows:
        if any(norm(row.get(column)) == wanted for column in EMPLOYEE_ID_COLUMNS):
            return row
    return None


def level_of(row: Row | None) -> str:
    if not row:
        return UNKNOWN_LEVEL
    return text(pick(row, LEVEL_COLUMNS)) or UNKNOWN_LEVEL


def band_from_goal_row(level: str, goal_row: Row | None, floor: float = DEFAULT_MIN_HOURS) -> GoalBand:
    goal_row = goal_row or {}
    minimum = parse_number(goal_row.get("Min"))
    if minimum is None:
        minimum = floor
    maximum = parse_number(goal_row.get("Max"))
    if maximum is None:
        maximum = minimum
    # source data does not guarantee max >= min
    return GoalBand(level=level, min=minimum, max=max(minimum, maximum))


class GoalResolver:
    """Resolves an employee's level and the min/max hours band for it.

    Missing employees, levels or goal rows never raise; they degrade to the
    ``"Unknown"`` level and the default floor band.
    """

    def __init__(self, cache: SheetCache, *, floor: float = DEFAULT_MIN_HOURS) -> None:
        self._cache = cache
        self._floor = floor

    async def resolve(self, employee_id: str) -> GoalBand:
        employees, goals = await asyncio.gather(
            self._cache.get("EMPLOYEE_MASTER"),
            self._cache.get("GOALS"),
        )
        level = level_of(find_employee(employees, employee_id))
        wanted = norm(level)
        goal_row = next(
            (row for row in goals if norm(pick(row, GOAL_LEVEL_COLUMNS)) == wanted),
            None,
        )
        return band_from_goal_row(level, goal_row, self._floor)
