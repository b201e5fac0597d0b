"""Memoized, coalescing access to indexed sheet rows."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from powerup.core.rows import index_sheet
from powerup.core.settings import SheetRegistry
from powerup.domain import CacheEntry, Row, Sheet

logger = logging.getLogger(__name__)


class SheetFetcher(Protocol):
    async def fetch(self, sheet_id: str) -> Sheet: ...


class SheetCache:
    """Holds the full indexed row set of every sheet fetched this process.

    Entries never expire on their own. They are refreshed only through
    :meth:`invalidate` or ``get(..., force=True)``; writers invalidate the
    sheets they touched. While a fetch for a key is running, every other
    caller for that key (forced or not) awaits the same fetch.
    """

    def __init__(self, client: SheetFetcher, registry: SheetRegistry) -> None:
        self._client = client
        self._registry = registry
        self._entries: dict[str, CacheEntry] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    async def _fill(self, entry: CacheEntry, sheet_id: str) -> list[Row]:
        try:
            sheet = await self._client.fetch(sheet_id)
            rows = index_sheet(sheet)
            entry.rows = rows
            entry.fetched_at = datetime.now(timezone.utc)
            logger.info("cached sheet %s (%d rows)", entry.key, len(rows))
            return rows
        finally:
            entry.in_flight = None
            if not entry.is_present and self._entries.get(entry.key) is entry:
                del self._entries[entry.key]

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def get(self, key: str, *, force: bool = False) -> list[Row]:
        cache_key = self._registry.key_for(key)
        entry = self._entries.get(cache_key)

        if entry is not None and entry.in_flight is not None:
            return list(await asyncio.shield(entry.in_flight))
        if entry is not None and entry.is_present and not force:
            return list(entry.rows)

        if entry is None:
            entry = CacheEntry(key=cache_key)
            self._entries[cache_key] = entry

        task = asyncio.get_running_loop().create_task(self._fill(entry, self._registry.resolve(cache_key)))
        entry.in_flight = task
        return list(await asyncio.shield(task))

    def peek(self, key: str) -> CacheEntry | None:
        return self._entries.get(self._registry.key_for(key))

    def invalidate(self, key: str) -> None:
        """Drop the entry for a sheet key or raw sheet id."""

        cache_key = self._registry.key_for(key)
        entry = self._entries.get(cache_key)
        if entry is None:
            return
        if entry.in_flight is not None:
            # the running fetch stays joinable; its result replaces the dropped rows
            entry.rows = []
            entry.fetched_at = None
        else:
            del self._entries[cache_key]
        logger.info("invalidated sheet %s", cache_key)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["SheetCache", "SheetFetcher"]
