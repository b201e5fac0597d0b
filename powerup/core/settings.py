from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

import yaml

from powerup.core.errors import NotFoundError

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

DEFAULT_API_BASE = "http://localhost:8080/api/smartsheet"


def _load_sheet_config(path: Path | None = None) -> dict:
    path = path or CONFIG_DIR / "sheets.yaml"
    if not path.exists():
        return {"sheets": {}, "admin_ids": []}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def _split_env(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class SheetRegistry:
    """Resolves logical sheet keys (``"GOALS"``) to remote sheet ids."""

    def __init__(self, sheets: Mapping[str, str]) -> None:
        self._ids = {str(key).upper(): str(value or "").strip() for key, value in sheets.items()}

    def resolve(self, key_or_id: str) -> str:
        """Return the sheet id for a logical key; raw ids pass through unchanged."""

        candidate = str(key_or_id).strip()
        upper = candidate.upper()
        if upper in self._ids:
            sheet_id = self._ids[upper]
            if not sheet_id:
                raise NotFoundError(f"sheet {upper} is not configured")
            return sheet_id
        if candidate in self._ids.values():
            return candidate
        if candidate.isdigit():
            return candidate
        raise NotFoundError(f"unknown sheet {candidate!r}")

    def key_for(self, key_or_id: str) -> str:
        """Canonical cache key: the logical key when one maps to the id."""

        sheet_id = self.resolve(key_or_id)
        for key, value in self._ids.items():
            if value == sheet_id:
                return key
        return sheet_id

    def keys(self) -> list[str]:
        return list(self._ids)


class AdminAllowlist:
    def __init__(self, employee_ids: Iterable[str]) -> None:
        self._ids = {str(item).strip() for item in employee_ids if str(item).strip()}

    def is_admin(self, employee_id: str | None) -> bool:
        candidate = str(employee_id or "").strip()
        return bool(candidate) and candidate in self._ids


@dataclass
class Settings:
    api_base: str = DEFAULT_API_BASE
    http_timeout: float = 30.0
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    sheets: dict[str, str] = field(default_factory=dict)
    admin_ids: list[str] = field(default_factory=list)
    confirm_attempts: int = 6
    confirm_interval: float = 1.5

    @classmethod
    def from_env(cls) -> "Settings":
        config_path = os.getenv("POWERUP_SHEETS_CONFIG")
        config = _load_sheet_config(Path(config_path).expanduser() if config_path else None)

        sheets = {str(key).upper(): str(value or "") for key, value in (config.get("sheets") or {}).items()}
        for key in list(sheets):
            override = os.getenv(f"POWERUP_SHEET_{key}")
            if override:
                sheets[key] = override.strip()

        admin_ids = _split_env(os.getenv("POWERUP_ADMIN_IDS")) or [str(item) for item in config.get("admin_ids") or []]

        settings = cls(sheets=sheets, admin_ids=admin_ids)
        settings.api_base = os.getenv("POWERUP_API_BASE") or DEFAULT_API_BASE
        timeout = os.getenv("POWERUP_HTTP_TIMEOUT")
        if timeout:
            settings.http_timeout = float(timeout)
        origins = _split_env(os.getenv("POWERUP_CORS_ORIGINS"))
        if origins:
            settings.cors_origins = origins
        return settings

    def registry(self) -> SheetRegistry:
        return SheetRegistry(self.sheets)

    def allowlist(self) -> AdminAllowlist:
        return AdminAllowlist(self.admin_ids)
