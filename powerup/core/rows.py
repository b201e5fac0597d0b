"""Row indexing and alias-based column lookup.

Sheets carry no fixed schema: the same logical field can live under
different column titles depending on the sheet (``"Employee ID"`` on one,
``"Position ID"`` on another).  Everything that reads a logical field goes
through :func:`pick` with an ordered alias list rather than a hard-coded
title.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Sequence

from powerup.domain import Row, Sheet

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_TRUTHY = {"true", "yes", "y", "1", "checked", "paid"}
_ISO_DAY = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_US_DAY = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})")


def _cell_value(cell: Any) -> Any:
    if isinstance(cell, Mapping):
        if "value" in cell:
            return cell["value"]
        return cell.get("displayValue")
    return cell


def index_row(titles: Sequence[str], raw: Any) -> Row:
    if isinstance(raw, Mapping) and "cells" not in raw:
        # proxy already flattened the row into title -> value
        return dict(raw)

    cells = raw.get("cells") if isinstance(raw, Mapping) else raw
    if not isinstance(cells, list) or not cells:
        return {}

    row: Row = {}
    for position, title in enumerate(titles):
        row[title] = _cell_value(cells[position]) if position < len(cells) else None
    return row


def index_sheet(sheet: Sheet) -> list[Row]:
    """Map every raw row of ``sheet`` to a title-keyed row, keeping empties."""

    titles = sheet.titles
    return [index_row(titles, raw) for raw in sheet.rows]


def norm(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def pick(row: Mapping[str, Any], aliases: Iterable[str], default: Any = "") -> Any:
    """Return the first alias value that is neither ``None`` nor empty."""

    for alias in aliases:
        value = row.get(alias)
        if value is not None and value != "":
            return value
    return default


def find_column(rows: Iterable[Mapping[str, Any]], aliases: Sequence[str]) -> str | None:
    """Probe the row schema for the first alias present as a column."""

    present: set[str] = set()
    for row in rows:
        present.update(row.keys())
    for alias in aliases:
        if alias in present:
            return alias
    return None


def to_number(value: Any) -> float:
    """Coerce a cell to a float; anything non-numeric counts as ``0.0``."""

    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    cleaned = _NON_NUMERIC.sub("", str(value if value is not None else ""))
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_number(value: Any) -> float | None:
    """Like :func:`to_number` but reports absent or non-numeric input as ``None``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        number = float(raw)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def is_truthy(value: Any) -> bool:
    if value is True:
        return True
    return norm(value) in _TRUTHY


def parse_date(value: Any) -> datetime | None:
    """Parse ``YYYY-MM-DD``, ``M/D/YY[YY]`` and ISO timestamps; ``None`` otherwise."""

    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raw = text(value)
    if not raw:
        return None

    match = _ISO_DAY.fullmatch(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_datetime(year, month, day)

    match = _US_DAY.fullmatch(raw)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        return _safe_datetime(year, month, day)

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def _safe_datetime(year: int, month: int, day: int) -> datetime | None:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


__all__ = [
    "find_column",
    "index_row",
    "index_sheet",
    "is_truthy",
    "norm",
    "parse_date",
    "parse_number",
    "pick",
    "text",
    "to_number",
]
