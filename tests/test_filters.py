from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from powerup.core.filters import (
    ALL_VALUES,
    ColumnDescriptor,
    DependentFilterBuilder,
    search_rows,
    sort_by_column,
    sort_rows,
)

ROWS = [
    {"Status": "Open", "Area": "Fab", "Submitted By": "Jane Doe", "Entry Date": "2024-01-03"},
    {"Status": "Completed", "Area": "Welding", "Submitted By": "adam Ray", "Entry Date": "2024-02-10"},
    {"Status": "Open", "Area": "fab", "Submitted By": "Zoe Lin", "Entry Date": "1/20/2024"},
    {"Status": None, "Area": "Fab", "Submitted By": "Bo Kim"},
]


@pytest.fixture()
def builder():
    return DependentFilterBuilder(
        [
            ColumnDescriptor.for_column("Status"),
            ColumnDescriptor.for_column("Area", "Dept/Area"),
            ColumnDescriptor(key="initial", label="Initial", extractor=lambda row: (row.get("Submitted By") or "?")[0]),
        ]
    )


def test_first_descriptor_is_the_default_column(builder):
    cascade = builder.cascade()

    assert cascade.column == "Status"
    assert cascade.value == ALL_VALUES
    assert builder.columns()[1] == {"key": "Area", "label": "Dept/Area"}


def test_values_keep_first_appearance_order_after_sentinel(builder):
    assert builder.values(ROWS, "Status") == [ALL_VALUES, "Open", "Completed", ""]
    assert builder.values(ROWS, "Area") == [ALL_VALUES, "Fab", "Welding", "fab"]
    assert builder.values(ROWS, "initial") == [ALL_VALUES, "J", "a", "Z", "B"]


def test_apply_filter_is_exact_and_sentinel_is_identity(builder):
    assert builder.apply_filter(ROWS, "Area", "Fab") == [ROWS[0], ROWS[3]]
    assert builder.apply_filter(ROWS, "Area", ALL_VALUES) == ROWS
    assert builder.apply_filter(ROWS, "Area", "FAB") == []


def test_changing_column_resets_value(builder):
    cascade = builder.cascade()
    cascade.select_value("Open")
    assert len(cascade.apply(ROWS)) == 2

    cascade.select_column("Area")

    assert cascade.value == ALL_VALUES
    assert cascade.apply(ROWS) == ROWS

    cascade.select_value("Welding")
    cascade.select_column("Area")
    assert cascade.value == ALL_VALUES


def test_unknown_column_is_rejected(builder):
    with pytest.raises(KeyError):
        builder.cascade().select_column("Owner")
    with pytest.raises(ValueError):
        DependentFilterBuilder([])


def test_search_is_case_insensitive_across_all_cells():
    assert search_rows(ROWS, "WELD") == [ROWS[1]]
    assert search_rows(ROWS, "  ") == ROWS
    assert search_rows(ROWS, "2024") == ROWS[:3]


def test_sort_recent_puts_undated_rows_last():
    ordered = sort_rows(ROWS, "recent")

    assert [row["Submitted By"] for row in ordered] == ["adam Ray", "Zoe Lin", "Jane Doe", "Bo Kim"]


def test_sort_owner_ignores_case():
    ordered = sort_rows(ROWS, "owner")

    assert [row["Submitted By"] for row in ordered] == ["adam Ray", "Bo Kim", "Jane Doe", "Zoe Lin"]


def test_sort_by_column_detects_numbers():
    rows = [{"Tokens": "10"}, {"Tokens": "9"}, {"Tokens": ""}, {"Tokens": "100"}]

    assert [row["Tokens"] for row in sort_by_column(rows, "Tokens")] == ["9", "10", "100", ""]
    assert [row["Tokens"] for row in sort_by_column(rows, "Tokens", ascending=False)][0] == ""


def test_literal_all_cell_is_an_ordinary_value(builder):
    rows = [{"Area": "All"}, {"Area": "Fab"}, {"Area": "All"}]

    assert builder.values(rows, "Area") == [ALL_VALUES, "All", "Fab"]
    assert builder.apply_filter(rows, "Area", "All") == [rows[0], rows[2]]
    assert builder.apply_filter(rows, "Area", ALL_VALUES) == rows
