"""Application service behind the dashboard cards and activity tables."""
from __future__ import annotations

import asyncio
import io
from datetime import datetime
from typing import Any

import pandas as pd

from powerup.application.admin_filter import NAME_COLUMNS, AdminFilterBroadcast
from powerup.application.goals import EMPLOYEE_ID_COLUMNS, GoalResolver
from powerup.core import rollups
from powerup.core.filters import ALL_LABEL, ALL_VALUES, ColumnDescriptor, DependentFilterBuilder, search_rows, sort_rows
from powerup.core.rows import is_truthy, pick, text
from powerup.domain import Identity, Row
from powerup.infrastructure import SheetCache

TOKEN_COLUMN = "Token Payout"
PAID_COLUMN = "Paid"

TABLES: dict[str, dict[str, Any]] = {
    "ci": {
        "sheet": "CI",
        "headers": {
            "Submission Date": "Submitted",
            "Submission ID": "ID",
            "Problem Statements": "Problem",
            "Proposed Improvement": "Improvement",
            "CI Approval": "Approval",
            "Assigned To (Primary)": "Assigned",
            "Status": "Status",
            "Action Item Entry Date": "Action Entered",
            "Last Meeting Action Item's": "Last Action",
            "Resourced": "Resourced",
            "Resourced Date": "Resourced On",
            "Token Payout": "Tokens",
            "Paid": "Paid",
        },
        "filters": ["Status", "CI Approval", "Assigned To (Primary)", "Paid"],
        "name_columns": (*NAME_COLUMNS, "Assigned To (Primary)"),
    },
    "safety": {
        "sheet": "SAFETY",
        "headers": {
            "Date": "Date",
            "Department/Area": "Dept/Area",
            "Safety Concern": "Safety Concern",
            "Describe the safety concern": "Description",
            "Recommendations to correct/improve safety issue": "Recommendations",
            "Resolution": "Resolution",
            "Who was the safety concern escalated to": "Escalated To",
            "Leadership update": "Leadership Update",
            "Closed/Confirmed by- leadership only": "Closed/Confirmed",
            "Status": "Status",
        },
        "filters": ["Safety Concern", "Department/Area", "Status"],
        "name_columns": NAME_COLUMNS,
    },
    "quality": {
        "sheet": "QUALITY",
        "headers": {
            "Catch ID": "Catch ID",
            "Entry Date": "Entry Date",
            "Submitted By": "Submitted By",
            "Area": "Area",
            "Quality Catch": "Quality Catch",
            "Part Number": "Part Number",
            "Description": "Description",
        },
        "filters": ["Area", "Submitted By", "Quality Catch"],
        "name_columns": NAME_COLUMNS,
    },
}


def _progress_message(state: str, hours: float, minimum: float) -> str:
    if state == "below":
        return f"Need {minimum - hours:.1f} hrs to hit min"
    if state == "met":
        return f"Target met! ({hours:.1f} hrs)"
    return f"Exceeded! ({hours:.1f} hrs)"


def submissions_label(count: int) -> str:
    return f"{count} submission{'' if count == 1 else 's'}"


class DashboardService:
    """Coordinates the read-side dashboard use cases."""

    def __init__(self, cache: SheetCache, goals: GoalResolver, admin_filter: AdminFilterBroadcast) -> None:
        self._cache = cache
        self._goals = goals
        self._admin_filter = admin_filter
        self._builders = {
            kind: DependentFilterBuilder(
                [ColumnDescriptor.for_column(title, config["headers"].get(title)) for title in config["filters"]]
            )
            for kind, config in TABLES.items()
        }

    # ------------------------------------------------------------------
    # power hours
    # ------------------------------------------------------------------
    async def power_hours(
        self,
        identity: Identity,
        time_range: rollups.TimeRange = "month",
        *,
        now: datetime | None = None,
    ) -> dict[str, object]:
        rows, band = await asyncio.gather(
            self._cache.get("POWER_HOURS"),
            self._goals.resolve(identity.employee_id),
        )
        hours = rollups.hours_for(rows, identity.employee_id, time_range, now)
        state = rollups.classify(hours, band.min, band.max)
        return {
            "employee_id": identity.employee_id,
            "range": time_range,
            "hours": round(hours, 1),
            "goal": {"level": band.level, "min": band.min, "max": band.max},
            "state": state,
            "percent": round(rollups.progress_percent(hours, band.max), 1),
            "message": _progress_message(state, hours, band.min),
        }

    # ------------------------------------------------------------------
    # tokens
    # ------------------------------------------------------------------
    async def token_total(self, identity: Identity) -> dict[str, object]:
        """Paid CI token payouts: the admin's scope, or the caller's own rows."""

        rows = await self._cache.get("CI")
        paid = [row for row in rows if is_truthy(row.get(PAID_COLUMN))]
        if self._admin_filter.is_admin(identity):
            paid = self._admin_filter.apply_scope(identity, paid, NAME_COLUMNS)
            scope = self._admin_filter.get_scope(identity).scope
        else:
            paid = [row for row in paid if rollups.belongs_to(row, identity.employee_id)]
            scope = None
        total = rollups.sum_rows(paid, lambda row: row.get(TOKEN_COLUMN))
        return {"total": total, "paid_rows": len(paid), "scope": scope}

    # ------------------------------------------------------------------
    # activity tables
    # ------------------------------------------------------------------
    async def _visible_rows(self, identity: Identity, kind: str) -> list[Row]:
        config = TABLES[kind]
        rows = await self._cache.get(config["sheet"])
        if self._admin_filter.is_admin(identity):
            return self._admin_filter.apply_scope(identity, rows, config["name_columns"])
        return [row for row in rows if rollups.belongs_to(row, identity.employee_id)]

    async def table_view(
        self,
        identity: Identity,
        kind: str,
        *,
        column: str | None = None,
        value: str | None = None,
        query: str | None = None,
        sort: str | None = "recent",
    ) -> dict[str, object]:
        if kind not in TABLES:
            raise KeyError(kind)
        config = TABLES[kind]
        visible = await self._visible_rows(identity, kind)

        cascade = self._builders[kind].cascade()
        if column and column != cascade.column:
            cascade.select_column(column)
        cascade.select_value(value)
        options = cascade.options(visible)

        view = sort_rows(search_rows(cascade.apply(visible), query), sort)
        headers = config["headers"]
        return {
            "kind": kind,
            "headers": [{"title": title, "label": label} for title, label in headers.items()],
            "filter": {
                "columns": self._builders[kind].columns(),
                "column": cascade.column,
                "value": cascade.value,
                "options": [{"value": option, "label": ALL_LABEL if option == ALL_VALUES else option} for option in options],
            },
            "count": len(view),
            "count_label": submissions_label(len(view)),
            "rows": [{title: row.get(title) for title in headers} for row in view],
        }

    async def export_table(self, identity: Identity, kind: str, **options: Any) -> str:
        """The same view as :meth:`table_view`, as CSV with friendly headers."""

        view = await self.table_view(identity, kind, **options)
        labels = {header["title"]: header["label"] for header in view["headers"]}
        frame = pd.DataFrame(view["rows"], columns=list(labels)).rename(columns=labels)
        buffer = io.StringIO()
        frame.to_csv(buffer, index=False)
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # admin helpers
    # ------------------------------------------------------------------
    async def employee_directory(self) -> list[dict[str, str]]:
        rows = await self._cache.get("EMPLOYEE_MASTER")
        directory: list[dict[str, str]] = []
        for row in rows:
            employee_id = text(pick(row, EMPLOYEE_ID_COLUMNS))
            name = text(pick(row, ("Display Name", "Employee Name", "Name")))
            if employee_id and name:
                directory.append({"id": employee_id, "name": name})
        directory.sort(key=lambda item: item["name"].lower())
        return directory
