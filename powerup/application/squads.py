"""Squad cards, squad details and the squad/member write flows."""
from __future__ import annotations

import asyncio
import logging
import re
from datetime import date
from typing import Any, Awaitable, Callable, Sequence

from powerup.application.admin_filter import AdminFilterBroadcast
from powerup.core.errors import ConfirmationTimeout, DuplicateMemberError, NotFoundError
from powerup.core.events import EntityAdded, EventBus
from powerup.core.rows import is_truthy, norm, pick, text
from powerup.core.schema import MemberCreate, SquadCreate, WriteOutcome
from powerup.core.settings import SheetRegistry
from powerup.domain import Identity, Row
from powerup.infrastructure import SheetCache, SheetClient

logger = logging.getLogger(__name__)

EMPLOYEE_ID = ("Position ID", "Employee ID")
EMPLOYEE_NAME = ("Display Name", "Employee Name", "Name")

SQUAD_ID = ("Squad ID", "ID")
SQUAD_NAME = ("Squad Name", "Squad", "Name", "Team")
SQUAD_CATEGORY = ("Category", "Squad Category")
SQUAD_LEADER = ("Squad Leader", "Leader Employee ID", "Leader Position ID")
SQUAD_MEMBERS = ("Members", "Member List")
SQUAD_OBJECTIVE = ("Objective", "Focus", "Purpose")
SQUAD_ACTIVE = ("Active", "Is Active?")
SQUAD_CREATED = ("Created Date", "Start Date", "Started")
SQUAD_NOTES = ("Notes", "Description")

MEMBER_SQUAD_ID = ("Squad ID", "SquadID", "Squad")
MEMBER_EMPLOYEE_ID = ("Employee ID", "EmployeeID", "Position ID")
MEMBER_NAME = ("Employee Name", "Name", "Display Name")
MEMBER_ROLE = ("Role",)
MEMBER_ACTIVE = ("Active", "Is Active?")
MEMBER_START = ("Start Date", "Added Date")

CATEGORIES = ("All", "CI", "Quality", "Safety", "Training", "Other")
DEFAULT_ROLES = ("Member", "Leader")
LEADER_ROLE = "Leader"

_TOKEN_SPLIT = re.compile(r"[,;\n]+")

Sleep = Callable[[float], Awaitable[None]]


def normalize_category(value: Any) -> str:
    """Map free-text categories onto the fixed set; unknown text becomes ``Other``."""

    lowered = norm(value)
    if re.search(r"^ci|improve", lowered):
        return "CI"
    for prefix, label in (("quality", "Quality"), ("safety", "Safety"), ("training", "Training")):
        if lowered.startswith(prefix):
            return label
    return "Other"


def _split_tokens(value: Any) -> list[str]:
    return [token.strip() for token in _TOKEN_SPLIT.split(text(value)) if token.strip()]


def _active(row: Row, aliases: Sequence[str]) -> bool:
    # rows without an Active cell count as active
    raw = pick(row, aliases, None)
    return True if raw is None or text(raw) == "" else is_truthy(raw)


def _leader_line(names: list[str]) -> str:
    if not names:
        return "-"
    if len(names) <= 2:
        return ", ".join(names)
    return f"{names[0]}, {names[1]} +{len(names) - 2} more"


class SquadDirectory:
    """Read side: squad cards with their leaders and members resolved."""

    def __init__(self, cache: SheetCache, admin_filter: AdminFilterBroadcast) -> None:
        self._cache = cache
        self._admin_filter = admin_filter

    async def _load(self) -> tuple[list[Row], list[Row], dict[str, str]]:
        squads, members, employees = await asyncio.gather(
            self._cache.get("SQUADS"),
            self._cache.get("SQUAD_MEMBERS"),
            self._cache.get("EMPLOYEE_MASTER"),
        )
        names: dict[str, str] = {}
        for row in employees:
            employee_id = text(pick(row, EMPLOYEE_ID))
            if employee_id:
                names[employee_id] = text(pick(row, EMPLOYEE_NAME)) or employee_id
        return squads, members, names

    @staticmethod
    def _members_by_squad(members: list[Row]) -> dict[str, list[Row]]:
        index: dict[str, list[Row]] = {}
        for row in members:
            squad_id = text(pick(row, MEMBER_SQUAD_ID))
            if squad_id:
                index.setdefault(squad_id, []).append(row)
        return index

    @staticmethod
    def _card(row: Row, members: list[Row], names: dict[str, str]) -> dict[str, Any]:
        squad_id = text(pick(row, SQUAD_ID))
        active_members = [member for member in members if _active(member, MEMBER_ACTIVE)]

        leader_ids = [
            text(pick(member, MEMBER_EMPLOYEE_ID))
            for member in active_members
            if norm(pick(member, MEMBER_ROLE)) == "leader"
        ]
        sheet_leader = text(pick(row, SQUAD_LEADER))
        if not leader_ids and sheet_leader:
            leader_ids = [sheet_leader]
        leader_names = [names.get(leader_id, leader_id) for leader_id in leader_ids if leader_id]

        member_ids = [text(pick(member, MEMBER_EMPLOYEE_ID)) for member in active_members]
        return {
            "id": squad_id,
            "name": text(pick(row, SQUAD_NAME)),
            "category": normalize_category(pick(row, SQUAD_CATEGORY)),
            "objective": text(pick(row, SQUAD_OBJECTIVE)),
            "notes": text(pick(row, SQUAD_NOTES)),
            "active": _active(row, SQUAD_ACTIVE),
            "created": text(pick(row, SQUAD_CREATED)),
            "leader_ids": leader_ids,
            "leader_names": leader_names,
            "leader_line": _leader_line(leader_names),
            "member_ids": [member_id for member_id in member_ids if member_id],
            "member_tokens": _split_tokens(pick(row, SQUAD_MEMBERS)),
        }

    def _mine_target(self, identity: Identity) -> tuple[str, str]:
        """(employee id, display name) that "my squads" filters on."""

        if self._admin_filter.is_admin(identity):
            state = self._admin_filter.get_scope(identity)
            if not state.is_all:
                return "", state.scope
        return identity.employee_id, identity.display_name

    async def list_squads(
        self,
        identity: Identity,
        *,
        category: str | None = None,
        active_only: bool = False,
        mine: bool = False,
        query: str | None = None,
    ) -> list[dict[str, Any]]:
        squads, members, names = await self._load()
        by_squad = self._members_by_squad(members)
        cards = [self._card(row, by_squad.get(text(pick(row, SQUAD_ID)), []), names) for row in squads]

        if mine:
            target_id, target_name = self._mine_target(identity)
            wanted = {norm(target_id), norm(target_name)} - {""}

            def involves(card: dict[str, Any]) -> bool:
                tokens = [*card["leader_ids"], *card["leader_names"], *card["member_ids"], *card["member_tokens"]]
                tokens += [names.get(member_id, "") for member_id in card["member_ids"]]
                return any(norm(token) in wanted for token in tokens)

            cards = [card for card in cards if involves(card)]
        if active_only:
            cards = [card for card in cards if card["active"]]
        if category and category != "All":
            cards = [card for card in cards if card["category"] == normalize_category(category)]
        needle = norm(query)
        if needle:
            cards = [
                card
                for card in cards
                if any(
                    needle in norm(value)
                    for value in (card["name"], card["leader_line"], *card["leader_ids"], card["objective"], card["notes"])
                )
            ]
        return cards

    async def squad_detail(self, identity: Identity, squad_id: str) -> dict[str, Any]:
        """Find a squad by id (falling back to its name) with its member roster."""

        squads, members, names = await self._load()
        wanted = norm(squad_id)
        row = next((item for item in squads if norm(pick(item, SQUAD_ID)) == wanted), None)
        if row is None:
            row = next((item for item in squads if norm(pick(item, SQUAD_NAME)) == wanted), None)
        if row is None:
            raise NotFoundError(f"squad {squad_id!r} not found")

        resolved_id = text(pick(row, SQUAD_ID))
        roster = [member for member in members if text(pick(member, MEMBER_SQUAD_ID)) == resolved_id]
        card = self._card(row, roster, names)

        is_admin = self._admin_filter.is_admin(identity)
        is_leader = text(identity.employee_id) in card["leader_ids"]
        card["members"] = [
            {
                "employee_id": text(pick(member, MEMBER_EMPLOYEE_ID)),
                "name": text(pick(member, MEMBER_NAME)) or names.get(text(pick(member, MEMBER_EMPLOYEE_ID)), ""),
                "role": text(pick(member, MEMBER_ROLE)) or "Member",
                "active": _active(member, MEMBER_ACTIVE),
                "start_date": text(pick(member, MEMBER_START)),
            }
            for member in roster
        ]
        card["can_add"] = is_admin or is_leader
        card["show_employee_id"] = is_admin
        return card


class SquadWriter:
    """Write side: append rows, confirm server-assigned ids, refresh caches."""

    def __init__(
        self,
        client: SheetClient,
        cache: SheetCache,
        registry: SheetRegistry,
        bus: EventBus,
        *,
        attempts: int = 6,
        interval: float = 1.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._cache = cache
        self._registry = registry
        self._bus = bus
        self._attempts = attempts
        self._interval = interval
        self._sleep = sleep

    # ---- helpers ----
    async def _employee_name(self, employee_id: str) -> str:
        for row in await self._cache.get("EMPLOYEE_MASTER"):
            if norm(pick(row, EMPLOYEE_ID)) == norm(employee_id):
                return text(pick(row, EMPLOYEE_NAME))
        return ""

    def _refresh(self, *keys: str) -> None:
        for key in keys:
            self._cache.invalidate(key)

    async def poll_for_identifier(self, squad_name: str) -> str:
        """Re-read SQUADS until the named row shows an id, or give up."""

        wanted = norm(squad_name)
        for attempt in range(1, self._attempts + 1):
            await self._sleep(self._interval)
            rows = await self._cache.get("SQUADS", force=True)
            row = next((item for item in rows if norm(pick(item, ("Squad Name",))) == wanted), None)
            identifier = text(pick(row, SQUAD_ID)) if row else ""
            if identifier:
                logger.info("squad %r confirmed as %s after %d attempt(s)", squad_name, identifier, attempt)
                return identifier
        raise ConfirmationTimeout(f"squad {squad_name!r} has no id yet", attempts=self._attempts)

    async def role_options(self) -> list[str]:
        """Allowed member roles, read from the SQUAD_MEMBERS column definition."""

        sheet = await self._client.fetch(self._registry.resolve("SQUAD_MEMBERS"))
        for column in sheet.columns:
            if norm(column.title) == "role" and column.options:
                return list(column.options)
        return list(DEFAULT_ROLES)

    # ---- public API ----
    async def create_squad(self, identity: Identity, payload: SquadCreate) -> WriteOutcome:
        name = payload.name.strip()
        created_by = identity.display_name or "System"
        today = date.today().isoformat()
        record = {
            "Squad Name": name,
            "Category": normalize_category(payload.category),
            "Objective": payload.objective.strip(),
            "Active": payload.active,
            "Created Date": today,
            "Created By": created_by,
        }
        await self._client.add_rows(self._registry.resolve("SQUADS"), [record], to_top=True)

        try:
            squad_id = await self.poll_for_identifier(name)
        except ConfirmationTimeout as exc:
            logger.warning("squad %r created but unconfirmed after %d attempts", name, exc.attempts)
            self._refresh("SQUADS")
            return WriteOutcome(
                status="unconfirmed",
                identifier=None,
                message="Squad created but ID not yet assigned. Refresh to link members.",
            )

        leader_id = text(payload.leader_id) or identity.employee_id
        if leader_id:
            leader_name = text(payload.leader_name) or await self._employee_name(leader_id) or identity.display_name
            leader = {
                "Squad ID": squad_id,
                "Squad Name": name,
                "Employee ID": leader_id,
                "Employee Name": leader_name,
                "Role": LEADER_ROLE,
                "Active": True,
                "Added By": created_by,
                "Start Date": today,
            }
            await self._client.add_rows(self._registry.resolve("SQUAD_MEMBERS"), [leader], to_top=True)

        self._refresh("SQUADS", "SQUAD_MEMBERS")
        self._bus.publish(EntityAdded(kind="squad", sheet_key="SQUADS", identifier=squad_id, detail={"name": name}))
        return WriteOutcome(status="confirmed", identifier=squad_id, message=f"Squad {name} created")

    async def add_member(self, identity: Identity, squad_id: str, payload: MemberCreate) -> WriteOutcome:
        employee_id = payload.employee_id.strip()
        members = await self._cache.get("SQUAD_MEMBERS", force=True)
        for row in members:
            if (
                text(pick(row, MEMBER_SQUAD_ID)) == squad_id
                and text(pick(row, MEMBER_EMPLOYEE_ID)) == employee_id
                and _active(row, MEMBER_ACTIVE)
            ):
                raise DuplicateMemberError(f"{employee_id} is already an active member of squad {squad_id}")

        options = await self.role_options()
        role = next((option for option in options if norm(option) == norm(payload.role)), None)
        if role is None:
            raise ValueError(f"role must be one of {', '.join(options)}")

        squads = await self._cache.get("SQUADS")
        squad = next((row for row in squads if text(pick(row, SQUAD_ID)) == squad_id), None)
        if squad is None:
            raise NotFoundError(f"squad {squad_id!r} not found")

        record = {
            "Squad ID": squad_id,
            "Squad Name": text(pick(squad, SQUAD_NAME)),
            "Employee ID": employee_id,
            "Employee Name": await self._employee_name(employee_id),
            "Role": role,
            "Active": payload.active,
            "Added By": identity.display_name or identity.employee_id,
            "Start Date": payload.start_date or date.today().isoformat(),
        }
        await self._client.add_rows(self._registry.resolve("SQUAD_MEMBERS"), [record], to_top=True)
        logger.info("added %s to squad %s as %s", employee_id, squad_id, role)

        self._refresh("SQUAD_MEMBERS")
        self._bus.publish(
            EntityAdded(
                kind="squad-member",
                sheet_key="SQUAD_MEMBERS",
                identifier=employee_id,
                detail={"squad_id": squad_id},
            )
        )
        return WriteOutcome(status="confirmed", identifier=employee_id, message=f"Added {employee_id} as {role}")
