from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap


class UserService:
    """Staff accounts, including the locked-account admin tools."""

    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get("users")) or [])

    async def register(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("users/register", json=data))

    async def update(self, user_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"users/{user_id}", json=data))

    async def set_status(self, user_id: str | int, status: str) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"users/{user_id}", json={"status": status}))

    async def delete(self, user_id: str | int) -> None:
        await self._client.delete(f"users/{user_id}")

    async def locked_accounts(self) -> list[dict[str, Any]]:
        data = unwrap(await self._client.get("auth/unlock/admin/locked-accounts"))
        if isinstance(data, dict):
            data = data.get("accounts") or data.get("users") or []
        return list(data or [])

    async def unlock(self, user_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.post(f"auth/unlock/admin/unlock/{user_id}")) or {}
