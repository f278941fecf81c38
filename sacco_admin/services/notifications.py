from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from ..core.errors import ApiError
from ..schemas.notification import Notification, NotificationPage, NotificationStatus, NotificationType
from .api_client import SaccoApiClient, unwrap

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30.0


class NotificationService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def list(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        status: Optional[NotificationStatus] = None,
        type: Optional[NotificationType] = None,
    ) -> NotificationPage:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        if type:
            params["type"] = type
        data = await self._client.get("notifications", params=params)
        return NotificationPage.model_validate(data or {})

    async def unread_count(self) -> int:
        data = await self._client.get("notifications/unread-count")
        payload = unwrap(data)
        if isinstance(payload, dict):
            return int(payload.get("count") or 0)
        return int(payload or 0)

    async def mark_read(self, notification_id: str) -> Notification:
        data = await self._client.patch(f"notifications/{notification_id}/mark-read")
        return Notification.model_validate(unwrap(data))

    async def mark_all_read(self) -> None:
        await self._client.post("notifications/mark-all-read")


class UnreadCountPoller:
    """Refresh the unread-notification count on a fixed interval.

    The first poll happens immediately on ``start()``. Polling stops only when
    ``stop()`` is awaited (or the ``async with`` block exits); a failed poll is
    logged and the next one is attempted on schedule.
    """

    def __init__(
        self,
        service: NotificationService,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_update: Callable[[int], None] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.service = service
        self.interval = interval
        self.on_update = on_update
        self.count = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> int:
        try:
            count = await self.service.unread_count()
        except ApiError as exc:
            logger.warning("Failed to fetch unread notification count: %s", exc.message)
            return self.count
        self.count = count
        if self.on_update is not None:
            self.on_update(count)
        return count

    async def _run(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "UnreadCountPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
