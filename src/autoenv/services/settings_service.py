"""Settings service: get/set/list of administrative defaults."""

from __future__ import annotations

from typing import TYPE_CHECKING

from result import Err, Ok, Result

if TYPE_CHECKING:
    from autoenv.models.projects import DefaultSetting
    from autoenv.services.protocols import SettingsStoreProtocol

GITHUB_DEFAULT_OWNER = "github.default_owner"


class SettingsService:
    """Service for the key/value defaults stored beside the registry."""

    def __init__(self, settings: SettingsStoreProtocol) -> None:
        self._settings = settings

    async def get(self, key: str) -> Result[str, str]:
        try:
            value = await self._settings.get(key)
        except Exception as exc:
            return Err(f"get {key}: {exc}")
        if value is None:
            return Err(f"no default set for {key!r}")
        return Ok(value)

    async def set(self, key: str, value: str) -> Result[None, str]:
        if not key.strip():
            return Err("setting key cannot be empty")
        try:
            await self._settings.set(key, value)
        except Exception as exc:
            return Err(f"set {key}: {exc}")
        return Ok(None)

    async def list_settings(self) -> Result[list[DefaultSetting], str]:
        try:
            return Ok(await self._settings.list_all())
        except Exception as exc:
            return Err(f"list defaults: {exc}")
