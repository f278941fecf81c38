from __future__ import annotations

from typing import Any

from .api_client import SaccoApiClient, unwrap


class RoleService:
    """Roles, permissions and their assignment to users."""

    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(self) -> list[dict[str, Any]]:
        data = await self._client.get(
            "system/roles", params={"includePermissions": "true", "includeUsers": "true"}
        )
        return list(unwrap(data) or [])

    async def get(self, role_id: str | int) -> dict[str, Any]:
        return unwrap(await self._client.get(f"system/roles/{role_id}"))

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.post("system/roles", json=data))

    async def update(self, role_id: str | int, data: dict[str, Any]) -> dict[str, Any]:
        return unwrap(await self._client.patch(f"system/roles/{role_id}", json=data))

    async def delete(self, role_id: str | int) -> None:
        await self._client.delete(f"system/roles/{role_id}")

    async def permissions(self) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get("system/permissions")) or [])

    async def role_permissions(self, role_id: str | int) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get(f"system/roles/{role_id}/permissions")) or [])

    async def grant(self, role_id: str | int, permission_id: str | int) -> None:
        await self._client.post(f"system/roles/{role_id}/permissions", json={"permissionId": permission_id})

    async def revoke(self, role_id: str | int, permission_id: str | int) -> None:
        await self._client.delete(f"system/roles/{role_id}/permissions/{permission_id}")

    async def assign(self, user_id: str | int, role_id: str | int) -> None:
        await self._client.post("system/roles/assign", json={"userId": user_id, "roleId": role_id})

    async def unassign(self, user_id: str | int, role_id: str | int) -> None:
        await self._client.delete("system/roles/assign", json={"userId": user_id, "roleId": role_id})

    async def user_roles(self, user_id: str | int) -> list[dict[str, Any]]:
        return list(unwrap(await self._client.get(f"auth/users/{user_id}/roles")) or [])

    async def my_permissions(self) -> list[Any]:
        return list(unwrap(await self._client.get("auth/users/me/permissions")) or [])

    async def permission_matrix(self) -> dict[str, Any]:
        return unwrap(await self._client.get("system/permissions/matrix/view"))
