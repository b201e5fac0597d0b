"""Wires the sheet client, cache and application services for one process."""
from __future__ import annotations

from dataclasses import dataclass

import httpx

from powerup.application.admin_filter import AdminFilterBroadcast
from powerup.application.dashboard import DashboardService
from powerup.application.goals import GoalResolver
from powerup.application.sessions import SessionService
from powerup.application.squads import SquadDirectory, SquadWriter
from powerup.core.events import EventBus
from powerup.core.settings import Settings, SheetRegistry
from powerup.infrastructure import InMemorySessionStore, SessionStore, SheetCache, SheetClient


@dataclass
class Services:
    settings: Settings
    registry: SheetRegistry
    client: SheetClient
    cache: SheetCache
    bus: EventBus
    sessions: SessionStore
    goals: GoalResolver
    admin_filter: AdminFilterBroadcast
    session: SessionService
    dashboard: DashboardService
    squads: SquadDirectory
    squad_writer: SquadWriter

    def reset(self) -> None:
        self.cache.clear()
        self.sessions.reset()
        self.bus.reset()

    async def close(self) -> None:
        await self.client.close()


def build_services(settings: Settings, *, http_client: httpx.AsyncClient | None = None) -> Services:
    registry = settings.registry()
    client = SheetClient(settings.api_base, timeout=settings.http_timeout, http_client=http_client)
    cache = SheetCache(client, registry)
    bus = EventBus()
    sessions = InMemorySessionStore()
    goals = GoalResolver(cache)
    admin_filter = AdminFilterBroadcast(sessions, settings.allowlist(), bus)
    return Services(
        settings=settings,
        registry=registry,
        client=client,
        cache=cache,
        bus=bus,
        sessions=sessions,
        goals=goals,
        admin_filter=admin_filter,
        session=SessionService(sessions, cache, admin_filter),
        dashboard=DashboardService(cache, goals, admin_filter),
        squads=SquadDirectory(cache, admin_filter),
        squad_writer=SquadWriter(
            client,
            cache,
            registry,
            bus,
            attempts=settings.confirm_attempts,
            interval=settings.confirm_interval,
        ),
    )
