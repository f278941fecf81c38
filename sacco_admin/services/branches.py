from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap


class BranchService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self, *, active_only: bool = False) -> list[dict[str, Any]]:
        params = {"status": "active"} if active_only else None
        return list(unwrap(await self._client.get("branches", params=params)) or [])

    async def get(self, branch_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"branches/{branch_id}"))

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("branches", json=data))

    async def update(self, branch_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"branches/{branch_id}", json=data))

    async def delete(self, branch_id: str | int) -> None:
        await self._client.delete(f"branches/{branch_id}")

    async def set_status(self, branch_id: str | int, status: str) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"branches/{branch_id}/status", json={"status": status}))

    async def stats(self, branch_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"branches/{branch_id}/stats"))

    async def code_available(self, branch_code: str) -> bool:
        data = unwrap(await self._client.get(f"branches/check-code/{branch_code}"))
        return bool(data.get("available")) if isinstance(data, dict) else bool(data)

    async def current_user_branch(self) -> dict[str, Any] | None:
        return unwrap(await self._client.get("auth/user/branch"))
