from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from .auth import CAMEL

NotificationType = Literal["EXPENSE", "LEAVE", "SYSTEM", "OTHER"]
NotificationStatus = Literal["UNREAD", "READ"]


class Notification(BaseModel):
    id: Union[str, int]
    user_id: Optional[Union[str, int]] = None
    title: str = ""
    message: str = ""
    type: str = "OTHER"
    status: str = "UNREAD"
    resource_type: Optional[str] = None
    resource_id: Optional[Union[str, int]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    model_config = CAMEL

    @property
    def is_unread(self) -> bool:
        return self.status == "UNREAD"


class PageMeta(BaseModel):
    total: int = 0
    page: int = 1
    limit: int = 20
    total_pages: int = 0

    model_config = CAMEL


class NotificationPage(BaseModel):
    data: list[Notification] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)

    model_config = CAMEL
