from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap

# The approval chain an expense moves through, in order.
APPROVAL_STAGES = ("manager", "accountant")


class ExpenseService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self, **filters: Any) -> list[dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value is not None}
        return list(unwrap(await self._client.get("expenses", params=params)) or [])

    async def get(self, expense_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"expenses/{expense_id}"))

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("expenses", json=data))

    async def add_item(self, expense_id: str | int, item: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post(f"expenses/{expense_id}/items", json=item))

    async def submit(self, expense_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.post(f"expenses/{expense_id}/submit"))

    async def approve(self, expense_id: str | int, stage: str, notes: str | None = None) -> dict[str, Any]:
        if stage not in APPROVAL_STAGES:
            raise ValueError(f"Unknown approval stage {stage!r}")
        data = await self._client.post(f"expenses/{expense_id}/approve/{stage}", json={"notes": notes})
        return unwrap(data)

    async def process(self, expense_id: str | int, payment: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post(f"expenses/{expense_id}/process", json=payment))

    async def complete(self, expense_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.post(f"expenses/{expense_id}/complete"))

    async def reject(self, expense_id: str | int, reason: str) -> dict[str, Any]:
        return unwrap(await self._client.post(f"expenses/{expense_id}/reject", json={"reason": reason}))

    async def upload_receipt(self, expense_id: str | int, filename: str, content: bytes, media_type: str) -> dict[str, Any]:
        response = await self._client.request(
            "POST",
            f"expenses/{expense_id}/receipts",
            files={"receipt": (filename, content, media_type)},
        )
        return unwrap(response.json())
