from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class MemberService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self, **filters: Any) -> list[dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value not in (None, "")}
        data = await self._client.get("members", params=params or None)
        return list(unwrap(data) or [])

    async def get(self, member_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"members/{member_id}"))

    async def create(self, member: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("members", json=member))

    async def update(self, member_id: str | int, changes: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.put(f"members/{member_id}", json=changes))

    async def delete(self, member_id: str | int) -> None:
        await self._client.delete(f"members/{member_id}")

    async def next_account_number(self) -> str | None:
        data = unwrap(await self._client.get("members/next-account-number"))
        if isinstance(data, dict):
            return data.get("accountNumber") or data.get("nextAccountNumber")
        return data

    async def upload_template(self) -> bytes:
        response = await self._client.request("GET", "members/uploads/template")
        return response.content

    async def bulk_upload(self, filename: str, content: bytes) -> dict[str, Any]:
        response = await self._client.request(
            "POST",
            "members/uploads/upload",
            files={"file": (filename, content, XLSX_MEDIA_TYPE)},
        )
        return response.json()


class AccountService:
    """Member accounts, their transactions, and the account-type catalogue."""

    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def account_types(self) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get("accounts/account-types")) or [])

    async def get_account_type(self, type_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"accounts/account-types/{type_id}"))

    async def create_account_type(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("accounts/account-types", json=data))

    async def update_account_type(self, type_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.put(f"accounts/account-types/{type_id}", json=data))

    async def delete_account_type(self, type_id: str | int) -> None:
        await self._client.delete(f"accounts/account-types/{type_id}")

    async def member_accounts(self, member_id: str | int) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get(f"members/{member_id}/accounts")) or [])

    async def get_account(self, member_id: str | int, account_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"members/{member_id}/accounts/{account_id}"))

    async def open_account(self, member_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post(f"members/{member_id}/accounts", json=data))

    async def update_account(self, member_id: str | int, account_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.put(f"members/{member_id}/accounts/{account_id}", json=data))

    async def close_account(self, member_id: str | int, account_id: str | int, reason: str) -> dict[str, Any]:
        return unwrap(
            await self._client.put(f"members/{member_id}/accounts/{account_id}/close", json={"reason": reason})
        )

    async def transactions(self, member_id: str | int, account_id: str | int) -> list[dict[str, Any]]:
        data = await self._client.get(f"members/{member_id}/accounts/{account_id}/transactions")
        return list(unwrap(data) or [])

    async def post_transaction(self, member_id: str | int, account_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(
            await self._client.post(f"members/{member_id}/accounts/{account_id}/transactions", json=data)
        )

    async def initial_payment(self, member_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post(f"members/{member_id}/initial-payment", json=data))
