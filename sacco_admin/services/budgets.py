from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap


class BudgetService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get("budget")) or [])

    async def get(self, budget_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"budget/{budget_id}"))

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("budget", json=data))

    async def update(self, budget_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"budget/{budget_id}", json=data))

    async def delete(self, budget_id: str | int) -> None:
        await self._client.delete(f"budget/{budget_id}")

    async def categories(self, **filters: Any) -> list[dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value is not None}
        return list(unwrap(await self._client.get("budget/categories", params=params)) or [])

    async def create_category(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("budget/categories", json=data))

    async def update_category(self, category_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"budget/categories/{category_id}", json=data))

    async def delete_category(self, category_id: str | int) -> None:
        await self._client.delete(f"budget/categories/{category_id}")

    async def allocate_to_category(self, category_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post(f"budget/categories/{category_id}/allocate", json=data))

    async def allocations(self, budget_id: str | int) -> list[dict[str, Any]]:
        data = await self._client.get("budget/allocations", params={"budgetId": budget_id})
        return list(unwrap(data) or [])

    async def create_allocation(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("budget/allocations", json=data))

    async def organization(self) -> dict[str, Any]:
        return unwrap(await self._client.get("organization"))
