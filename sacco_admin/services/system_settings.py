from __future__ import annotations

from typing import Any

from ..core.errors import ApiError
from .api_client import SaccoApiClient


class SystemSettingsService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self, section: str | None = None) -> list[dict[str, Any]]:
        params = {"section": section} if section else None
        data = await self._client.get("settings", params=params)
        return list((data or {}).get("settings") or [])

    async def get(self, key: str, section: str | None = None) -> dict[str, Any] | None:
        params = {"section": section} if section else None
        try:
            data = await self._client.get(f"settings/{key}", params=params)
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        return (data or {}).get("setting")

    async def upsert(self, key: str, value: Any, description: str | None = None) -> dict[str, Any]:
        data = await self._client.put(f"settings/{key}", json={"value": value, "description": description})
        return (data or {}).get("setting") or {}

    async def delete(self, key: str) -> None:
        await self._client.delete(f"settings/{key}")
