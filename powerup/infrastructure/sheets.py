"""HTTP client for the spreadsheet proxy API."""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from powerup.core.errors import DecodeError, NetworkError
from powerup.core.schema import SheetPayload
from powerup.domain import Column, Sheet

logger = logging.getLogger(__name__)


class SheetClient:
    """Fetches raw sheets and appends rows through the remote sheet service.

    The client never caches; every :meth:`fetch` is a network round trip.
    """

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _sheet_url(self, sheet_id: str) -> str:
        return f"{self._api_base}/sheet/{sheet_id}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc
        if not response.is_success:
            raise NetworkError(f"Fetch failed {response.status_code}", status_code=response.status_code)
        return response

    @staticmethod
    def _decode(sheet_id: str, response: httpx.Response) -> Sheet:
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(f"sheet {sheet_id} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise DecodeError(f"sheet {sheet_id} payload must be an object")

        try:
            payload = SheetPayload.model_validate(body)
        except ValidationError as exc:
            raise DecodeError(f"sheet {sheet_id} payload is malformed: {exc.error_count()} error(s)") from exc

        columns = tuple(Column(title=column.title, options=tuple(column.options)) for column in payload.columns)
        return Sheet(id=str(payload.id or sheet_id), columns=columns, rows=tuple(payload.rows))

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def fetch(self, sheet_id: str) -> Sheet:
        response = await self._send("GET", self._sheet_url(sheet_id))
        sheet = self._decode(sheet_id, response)
        logger.debug("fetched sheet %s (%d rows)", sheet_id, len(sheet.rows))
        return sheet

    async def add_rows(
        self,
        sheet_id: str,
        records: Sequence[Mapping[str, Any]],
        *,
        to_top: bool = False,
    ) -> dict[str, Any]:
        """Append ``records`` (field name -> value) to a sheet and return the ack."""

        body = {"rows": [dict(record) for record in records], "toTop": to_top}
        response = await self._send("POST", f"{self._sheet_url(sheet_id)}/rows", json=body)
        if not response.content:
            return {}
        try:
            ack = response.json()
        except json.JSONDecodeError as exc:
            raise DecodeError(f"sheet {sheet_id} returned a non-JSON ack") from exc
        return ack if isinstance(ack, dict) else {"result": ack}

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["SheetClient"]
