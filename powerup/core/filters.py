"""Cascading column/value filters plus search and sort for table views."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Sequence

from powerup.core.rows import parse_date, parse_number, pick, text

ALL_VALUES = "__ALL_VALUES__"
ALL_LABEL = "All"

RECENT_DATE_COLUMNS = (
    "Created",
    "Entry Date",
    "Submission Date",
    "Date",
    "Action Item Entry Date",
    "Resourced Date",
)
OWNER_COLUMNS = ("Owner", "Submitted By")

Record = Mapping[str, Any]
Extractor = Callable[[Record], Any]


@dataclass(frozen=True)
class ColumnDescriptor:
    key: str
    label: str
    extractor: Extractor

    @classmethod
    def for_column(cls, title: str, label: str | None = None) -> "ColumnDescriptor":
        return cls(key=title, label=label or title, extractor=lambda record: record.get(title))


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


class DependentFilterBuilder:
    """Two-stage filter: pick a column, then one of that column's values.

    Works on raw rows and on already-shaped records alike; all access goes
    through each descriptor's extractor.
    """

    def __init__(self, descriptors: Sequence[ColumnDescriptor]) -> None:
        if not descriptors:
            raise ValueError("at least one column descriptor is required")
        self._descriptors = list(descriptors)
        self._by_key = {descriptor.key: descriptor for descriptor in self._descriptors}

    @property
    def default_column(self) -> str:
        return self._descriptors[0].key

    def columns(self) -> list[dict[str, str]]:
        return [{"key": descriptor.key, "label": descriptor.label} for descriptor in self._descriptors]

    def descriptor(self, column_key: str) -> ColumnDescriptor:
        try:
            return self._by_key[column_key]
        except KeyError:
            raise KeyError(f"unknown filter column {column_key!r}") from None

    def values(self, rows: Iterable[Record], column_key: str) -> list[str]:
        """The sentinel followed by distinct values in order of first appearance."""

        extractor = self.descriptor(column_key).extractor
        seen: dict[str, None] = {}
        for row in rows:
            seen.setdefault(_as_text(extractor(row)), None)
        return [ALL_VALUES, *seen]

    def apply_filter(self, rows: Sequence[Record], column_key: str, value: str) -> list[Record]:
        if value == ALL_VALUES:
            return list(rows)
        extractor = self.descriptor(column_key).extractor
        return [row for row in rows if _as_text(extractor(row)) == value]

    def cascade(self) -> "FilterCascade":
        return FilterCascade(self, column=self.default_column)


@dataclass
class FilterCascade:
    """Selection state for one view; a column change always resets the value."""

    builder: DependentFilterBuilder
    column: str
    value: str = field(default=ALL_VALUES)

    def select_column(self, column_key: str) -> None:
        self.builder.descriptor(column_key)
        self.column = column_key
        self.value = ALL_VALUES

    def select_value(self, value: str | None) -> None:
        self.value = value if value else ALL_VALUES

    def options(self, rows: Iterable[Record]) -> list[str]:
        return self.builder.values(rows, self.column)

    def apply(self, rows: Sequence[Record]) -> list[Record]:
        return self.builder.apply_filter(rows, self.column, self.value)


# ----------------------------------------------------------------------
# search & sort
# ----------------------------------------------------------------------
def search_rows(rows: Sequence[Record], query: str | None) -> list[Record]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(rows)
    return [row for row in rows if needle in json.dumps(row, default=str, ensure_ascii=False).lower()]


def _recent_key(row: Record) -> datetime:
    moment = parse_date(pick(row, RECENT_DATE_COLUMNS, None))
    return moment or datetime.min


def sort_rows(rows: Sequence[Record], mode: str | None = "recent") -> list[Record]:
    if mode == "owner":
        return sorted(rows, key=lambda row: text(pick(row, OWNER_COLUMNS)).lower())
    return sorted(rows, key=_recent_key, reverse=True)


def sort_by_column(rows: Sequence[Record], column: str, ascending: bool = True) -> list[Record]:
    """Numeric order when every populated cell parses as a number, text order otherwise."""

    cells = [row.get(column) for row in rows]
    numeric = all(parse_number(cell) is not None for cell in cells if text(cell))
    if numeric:
        def key(row: Record) -> tuple[int, float]:
            number = parse_number(row.get(column))
            return (0, number) if number is not None else (1, 0.0)
    else:
        def key(row: Record) -> tuple[int, str]:
            value = text(row.get(column)).lower()
            return (0, value) if value else (1, "")

    return sorted(rows, key=key, reverse=not ascending)
