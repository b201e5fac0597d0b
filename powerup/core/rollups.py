"""Sums, counts and threshold classification over row sequences.

Every value passes through :func:`powerup.core.rows.to_number`, so missing
or non-numeric cells contribute ``0`` and never poison a total.  Results
depend only on the multiset of rows, not on their order.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Literal, Mapping

from powerup.core.rows import parse_date, pick, text, to_number
from powerup.domain import RollupResult, Row

Predicate = Callable[[Row], bool]
ValueOf = Callable[[Row], Any]
KeyOf = Callable[[Row], Any]
State = Literal["below", "met", "exceeded"]
TimeRange = Literal["today", "week", "month", "all"]

EMPLOYEE_ID_COLUMNS = ("Employee ID", "Position ID")
MONTH_KEY_COLUMNS = ("MonthKey", "Month Key")
ENTRY_DATE_COLUMNS = ("Date", "Entry Date")
HOURS_COLUMN = "Completed Hours"


def _selected(rows: Iterable[Row], predicate: Predicate | None) -> Iterable[Row]:
    if predicate is None:
        return rows
    return (row for row in rows if predicate(row))


def sum_rows(rows: Iterable[Row], value_of: ValueOf, predicate: Predicate | None = None) -> float:
    return math.fsum(to_number(value_of(row)) for row in _selected(rows, predicate))


def group_sum(
    rows: Iterable[Row],
    key_of: KeyOf,
    value_of: ValueOf,
    predicate: Predicate | None = None,
) -> dict[str, float]:
    # fsum is exact, so group totals ignore row order
    values: dict[str, list[float]] = {}
    for row in _selected(rows, predicate):
        values.setdefault(text(key_of(row)), []).append(to_number(value_of(row)))
    return {key: math.fsum(items) for key, items in values.items()}


def count_rows(rows: Iterable[Row], predicate: Predicate | None = None) -> int:
    return sum(1 for _ in _selected(rows, predicate))


def group_count(rows: Iterable[Row], key_of: KeyOf, predicate: Predicate | None = None) -> dict[str, int]:
    groups: dict[str, int] = {}
    for row in _selected(rows, predicate):
        key = text(key_of(row))
        groups[key] = groups.get(key, 0) + 1
    return groups


def rollup(
    rows: Iterable[Row],
    key_of: KeyOf,
    value_of: ValueOf,
    predicate: Predicate | None = None,
) -> RollupResult:
    groups = group_sum(rows, key_of, value_of, predicate)
    return RollupResult(total=math.fsum(groups.values()), groups=groups)


def classify(value: float, minimum: float, maximum: float) -> State:
    """Both band edges count as ``met``."""

    if value < minimum:
        return "below"
    if value <= maximum:
        return "met"
    return "exceeded"


def percent_complete(completed: int | float, total: int | float) -> int:
    if not total:
        return 0
    # halves round up, not to even
    return math.floor(completed / total * 100 + 0.5)


def progress_percent(value: float, maximum: float) -> float:
    """Bar fill for ``value`` against the band maximum, clamped to 0..100."""

    pct = value / (maximum or 1) * 100
    return max(0.0, min(100.0, pct))


# ----------------------------------------------------------------------
# power hours periods
# ----------------------------------------------------------------------
def month_key(moment: datetime | None = None) -> str:
    moment = moment or datetime.now()
    return f"{moment.year}-{moment.month:02d}"


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime) -> datetime:
    return start_of_day(moment) - timedelta(days=moment.weekday())


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def belongs_to(row: Mapping[str, Any], employee_id: str) -> bool:
    wanted = text(employee_id)
    if not wanted:
        return False
    return any(text(row.get(column)) == wanted for column in EMPLOYEE_ID_COLUMNS)


def in_time_range(row: Mapping[str, Any], time_range: TimeRange, now: datetime | None = None) -> bool:
    now = now or datetime.now()
    if time_range == "all":
        return True

    if time_range == "month":
        key = text(pick(row, MONTH_KEY_COLUMNS))
        if key:
            return key == month_key(now)
        entry = parse_date(pick(row, ENTRY_DATE_COLUMNS, None))
        return entry is not None and month_key(entry) == month_key(now)

    # rows with no date at all are logged as of now; unparseable dates never match
    raw = pick(row, ENTRY_DATE_COLUMNS, None)
    entry = now if raw is None else parse_date(raw)
    if entry is None:
        return False
    start = start_of_day(now) if time_range == "today" else start_of_week(now)
    return start <= entry <= end_of_day(now)


def hours_for(
    rows: Iterable[Row],
    employee_id: str,
    time_range: TimeRange = "month",
    now: datetime | None = None,
) -> float:
    return sum_rows(
        rows,
        lambda row: row.get(HOURS_COLUMN),
        lambda row: belongs_to(row, employee_id) and in_time_range(row, time_range, now),
    )


__all__ = [
    "belongs_to",
    "classify",
    "count_rows",
    "group_count",
    "group_sum",
    "hours_for",
    "in_time_range",
    "month_key",
    "percent_complete",
    "progress_percent",
    "rollup",
    "sum_rows",
]
