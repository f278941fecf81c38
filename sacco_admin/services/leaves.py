from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap


class LeaveService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self, **filters: Any) -> list[dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value is not None}
        return list(unwrap(await self._client.get("leaves", params=params)) or [])

    async def get(self, leave_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"leaves/{leave_id}"))

    async def request(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("leaves", json=data))

    async def approve(self, leave_id: str | int, notes: str | None = None) -> dict[str, Any]:
        return unwrap(await self._client.post(f"leaves/{leave_id}/approve", json={"notes": notes}))

    async def reject(self, leave_id: str | int, reason: str) -> dict[str, Any]:
        return unwrap(await self._client.post(f"leaves/{leave_id}/reject", json={"reason": reason}))
