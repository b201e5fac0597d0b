from __future__ import annotations

import asyncio
import csv
import io
import json
import sys
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from powerup.app import create_app
from powerup.core.rollups import month_key
from powerup.core.settings import Settings

BASE = "http://sheets.test/api/smartsheet"
SHEETS = {
    "EMPLOYEE_MASTER": "11",
    "GOALS": "22",
    "POWER_HOURS": "33",
    "CI": "44",
    "SAFETY": "55",
    "QUALITY": "66",
    "SQUADS": "77",
    "SQUAD_MEMBERS": "88",
}
ADMIN_HEADERS = {"X-Session-Id": "admin-1", "X-Employee-Id": "IKS968538", "X-Display-Name": "Site Admin"}
JANE_HEADERS = {"X-Session-Id": "jane-1", "X-Employee-Id": "E1", "X-Display-Name": "Jane Doe"}
JOHN_HEADERS = {"X-Session-Id": "john-1", "X-Employee-Id": "E2"}


def _positional(titles: list[str], records: list[list]) -> dict:
    return {
        "columns": [{"title": title} for title in titles],
        "rows": [{"cells": [{"value": value} for value in record]} for record in records],
    }


class RemoteSheets:
    """Serves the remote sheet API from memory and records every request."""

    def __init__(self) -> None:
        this_month = month_key()
        self.requests: list[tuple[str, str]] = []
        self.fail: set[str] = set()
        self.squad_ids = iter(["901", "902", "903"])
        self.payloads: dict[str, dict] = {
            "11": _positional(
                ["Position ID", "Display Name", "PowerUp Level (Select)"],
                [["E1", "Jane Doe", "LVL2"], ["E2", "John Smith", "LVL1"], ["IKS968538", "Site Admin", ""]],
            ),
            "22": _positional(["Level", "Min", "Max"], [["LVL1", 4, 6], ["LVL2", 8, 12]]),
            "33": {
                "columns": [{"title": "Employee ID"}, {"title": "Completed Hours"}, {"title": "MonthKey"}],
                "rows": [
                    {"Employee ID": "E1", "Completed Hours": 5, "MonthKey": this_month},
                    {"Employee ID": "E1", "Completed Hours": 3, "MonthKey": this_month},
                    {"Employee ID": "E1", "Completed Hours": 9, "MonthKey": "1999-01"},
                    {"Employee ID": "E2", "Completed Hours": 2, "MonthKey": this_month},
                ],
            },
            "44": _positional(
                ["Submission ID", "Submission Date", "Employee ID", "Display Name", "Status", "Token Payout", "Paid"],
                [
                    ["CI-1", "2024-01-03", "E1", "Jane Doe", "Open", "10", "yes"],
                    ["CI-2", "2024-02-10", "E1", "Jane Doe", "Completed", "25", "Paid"],
                    ["CI-3", "2024-01-20", "E2", "John Smith", "Open", "40", "true"],
                    ["CI-4", "2024-01-21", "E1", "Jane Doe", "Open", "99", ""],
                ],
            ),
            "55": _positional(["Date", "Position ID", "Safety Concern", "Status"], [["2024-03-01", "E1", "Slip", "Open"]]),
            "66": _positional(["Entry Date", "Employee ID", "Submitted By", "Area"], [["2024-03-02", "E2", "John Smith", "Fab"]]),
            "77": {
                "columns": [{"title": "Squad ID"}, {"title": "Squad Name"}, {"title": "Category"}, {"title": "Active"}],
                "rows": [{"Squad ID": "7", "Squad Name": "Torque", "Category": "CI", "Active": "true"}],
            },
            "88": {
                "columns": [
                    {"title": "Squad ID"},
                    {"title": "Employee ID"},
                    {"title": "Role", "options": ["Member", "Leader"]},
                    {"title": "Active"},
                ],
                "rows": [{"Squad ID": "7", "Employee ID": "E1", "Role": "Leader", "Active": "true"}],
            },
        }

    def count(self, method: str, sheet_id: str) -> int:
        return sum(1 for item in self.requests if item == (method, sheet_id))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.split("/")
        sheet_id = parts[4]
        self.requests.append((request.method, sheet_id))
        if sheet_id in self.fail:
            return httpx.Response(503, text="maintenance")
        if request.method == "POST":
            body = json.loads(request.content.decode("utf-8"))
            for record in body["rows"]:
                if sheet_id == "77":
                    record = {"Squad ID": next(self.squad_ids), **record}
                rows = self.payloads[sheet_id]["rows"]
                if body["toTop"]:
                    rows.insert(0, record)
                else:
                    rows.append(record)
            return httpx.Response(200, json={"message": "SUCCESS"})
        return httpx.Response(200, json={"id": int(sheet_id), **self.payloads[sheet_id]})


@pytest.fixture()
def remote():
    return RemoteSheets()


@pytest.fixture()
def client(remote):
    settings = Settings(
        api_base=BASE,
        sheets=dict(SHEETS),
        admin_ids=["IKS968538"],
        confirm_attempts=2,
        confirm_interval=0,
    )
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(remote))
    app = create_app(settings, http_client=http_client)
    with TestClient(app) as test_client:
        yield test_client


def test_root_lists_configured_sheets(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "SQUADS" in response.json()["sheets"]


def test_sheet_rows_are_cached_until_forced_or_invalidated(client, remote):
    first = client.get("/api/sheets/goals")
    assert first.status_code == 200
    assert first.json()["key"] == "GOALS"
    assert first.json()["rows"][1] == {"Level": "LVL2", "Min": 8, "Max": 12}

    client.get("/api/sheets/GOALS")
    client.get("/api/sheets/22")
    assert remote.count("GET", "22") == 1

    client.get("/api/sheets/GOALS", params={"force": "true"})
    assert remote.count("GET", "22") == 2

    response = client.delete("/api/sheets/GOALS/cache")
    assert response.json() == {"key": "GOALS", "invalidated": True}
    client.get("/api/sheets/GOALS")
    assert remote.count("GET", "22") == 3


def test_unknown_sheet_is_404_and_upstream_failure_is_502(client, remote):
    assert client.get("/api/sheets/PAYROLL").status_code == 404

    remote.fail.add("33")
    response = client.get("/api/sheets/POWER_HOURS")
    assert response.status_code == 502
    body = response.json()
    assert body["error"] is True
    assert body["type"] == "NetworkError"
    assert body["message"] == "Fetch failed 503"


def test_session_header_and_logout(client):
    response = client.get("/api/session", headers=JANE_HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["level"] == "LVL2"
    assert body["level_label"] == "LVL2"
    assert body["is_admin"] is False

    # later calls on the same session may omit the identity headers
    again = client.get("/api/session", headers={"X-Session-Id": "jane-1"})
    assert again.json()["display_name"] == "Jane Doe"

    admin = client.get("/api/session", headers=ADMIN_HEADERS).json()
    assert admin["level_label"] == "Admin"
    assert admin["admin_scope"] == "__ALL__"

    assert client.post("/api/session/logout", headers={"X-Session-Id": "jane-1"}).status_code == 200
    assert client.get("/api/session", headers={"X-Session-Id": "jane-1"}).status_code == 401


def test_goal_band_and_power_hours(client):
    assert client.get("/api/goals/E1").json() == {"level": "LVL2", "min": 8.0, "max": 12.0}
    assert client.get("/api/goals/ghost").json() == {"level": "Unknown", "min": 8.0, "max": 8.0}

    body = client.get("/api/power-hours", headers=JANE_HEADERS).json()
    assert body["hours"] == 8
    assert body["state"] == "met"
    assert body["percent"] == 66.7
    assert body["message"] == "Target met! (8.0 hrs)"

    john = client.get("/api/power-hours", params={"range": "all"}, headers=JOHN_HEADERS).json()
    assert john["state"] == "below"
    assert john["message"] == "Need 2.0 hrs to hit min"

    assert client.get("/api/power-hours", params={"range": "year"}, headers=JANE_HEADERS).status_code == 422


def test_tokens_follow_ownership_or_admin_scope(client):
    jane = client.get("/api/tokens", headers=JANE_HEADERS).json()
    assert jane["total"] == 35
    assert jane["scope"] is None

    assert client.get("/api/tokens", headers=ADMIN_HEADERS).json()["total"] == 75
    client.put("/api/admin/scope", json={"scope": "John Smith"}, headers=ADMIN_HEADERS)
    assert client.get("/api/tokens", headers=ADMIN_HEADERS).json() == {"total": 40, "paid_rows": 1, "scope": "John Smith"}


def test_admin_scope_requires_admin(client):
    assert client.put("/api/admin/scope", json={"scope": "Jane Doe"}, headers=JANE_HEADERS).status_code == 403
    assert client.get("/api/admin/scope", headers=JANE_HEADERS).json()["is_all"] is True
    assert client.get("/api/admin/employees", headers=JANE_HEADERS).status_code == 403

    response = client.put("/api/admin/scope", json={"scope": "Jane Doe"}, headers=ADMIN_HEADERS)
    assert response.json() == {"scope": "Jane Doe", "is_all": False, "is_admin": True}
    assert client.delete("/api/admin/scope", headers=ADMIN_HEADERS).json()["scope"] == "__ALL__"

    names = [item["name"] for item in client.get("/api/admin/employees", headers=ADMIN_HEADERS).json()["items"]]
    assert names == ["Jane Doe", "John Smith", "Site Admin"]


def test_table_view_filters_and_counts(client):
    mine = client.get("/api/tables/ci", headers=JANE_HEADERS).json()
    assert mine["count"] == 3
    assert mine["count_label"] == "3 submissions"
    assert [row["Submission ID"] for row in mine["rows"]] == ["CI-2", "CI-4", "CI-1"]
    assert mine["filter"]["column"] == "Status"
    assert [option["label"] for option in mine["filter"]["options"]] == ["All", "Open", "Completed"]
    assert mine["filter"]["value"] == mine["filter"]["options"][0]["value"]

    open_only = client.get("/api/tables/ci", params={"value": "Open"}, headers=JANE_HEADERS).json()
    assert open_only["count"] == 2

    switched = client.get("/api/tables/ci", params={"column": "Paid", "value": "Paid"}, headers=JANE_HEADERS).json()
    assert switched["filter"]["column"] == "Paid"
    assert switched["count_label"] == "1 submission"

    searched = client.get("/api/tables/ci", params={"q": "ci-4"}, headers=JANE_HEADERS).json()
    assert searched["count"] == 1

    everyone = client.get("/api/tables/ci", headers=ADMIN_HEADERS).json()
    assert everyone["count"] == 4

    assert client.get("/api/tables/payroll", headers=JANE_HEADERS).status_code == 404
    assert client.get("/api/tables/ci", params={"column": "Owner"}, headers=JANE_HEADERS).status_code == 400


def test_table_export_is_csv_with_labels(client):
    response = client.get("/api/tables/quality/export", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 1
    assert rows[0]["Submitted By"] == "John Smith"
    assert rows[0]["Area"] == "Fab"


def test_squad_flow(client, remote):
    listing = client.get("/api/squads", headers=JANE_HEADERS).json()
    assert listing["count"] == 1
    assert listing["items"][0]["leader_line"] == "Jane Doe"

    created = client.post(
        "/api/squads",
        json={"name": "Night Shift", "category": "quality", "objective": "Zero escapes"},
        headers=JANE_HEADERS,
    )
    assert created.status_code == 200
    assert created.json()["status"] == "confirmed"
    squad_id = created.json()["identifier"]
    assert squad_id == "901"

    detail = client.get(f"/api/squads/{squad_id}", headers=JANE_HEADERS).json()
    assert detail["category"] == "Quality"
    assert detail["can_add"] is True

    added = client.post(f"/api/squads/{squad_id}/members", json={"employee_id": "E2"}, headers=JANE_HEADERS)
    assert added.json()["status"] == "confirmed"

    duplicate = client.post(f"/api/squads/{squad_id}/members", json={"employee_id": "E2"}, headers=JANE_HEADERS)
    assert duplicate.status_code == 409

    forbidden = client.post("/api/squads/7/members", json={"employee_id": "E2"}, headers=JOHN_HEADERS)
    assert forbidden.status_code == 403

    assert client.get("/api/squads/404", headers=JANE_HEADERS).status_code == 404
    assert client.post("/api/squads", json={"name": "", "category": "CI", "objective": "x"}, headers=JANE_HEADERS).status_code == 422


def test_shutdown_closes_only_the_owned_http_client():
    owned = create_app(Settings(api_base=BASE, sheets=dict(SHEETS)))
    owned_http = owned.state.services.client._client
    with TestClient(owned) as test_client:
        assert test_client.get("/").status_code == 200
        assert not owned_http.is_closed
    assert owned_http.is_closed

    injected_http = httpx.AsyncClient(transport=httpx.MockTransport(RemoteSheets()))
    with TestClient(create_app(Settings(api_base=BASE, sheets=dict(SHEETS)), http_client=injected_http)):
        pass
    assert not injected_http.is_closed
    asyncio.run(injected_http.aclose())
