from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps.session import WebSession, get_web_session
from ..services.notifications import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/unread-count")
async def unread_count(web: WebSession = Depends(get_web_session)) -> dict[str, int]:
    if not web.store.has_session():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required")
    count = await NotificationService(web.client).unread_count()
    return {"count": count}
