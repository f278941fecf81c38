"""Signed-in pages under ``/dashboard``.

Every route here depends on ``require_session``; admin pages add a
``RequireRoles`` dependency on top.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.errors import ApiError
from ..core.roles import UserRole
from ..deps.session import RequireRoles, WebSession, get_web_session, render, require_session
from ..schemas.auth import User
from ..services.branches import BranchService
from ..services.members import MemberService
from ..services.notifications import NotificationService
from ..services.users import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", dependencies=[Depends(require_session)])

require_admin = RequireRoles(UserRole.ADMIN)
require_user_admin = RequireRoles(UserRole.ADMIN, UserRole.SUPER_ADMIN)


@router.get("", response_class=HTMLResponse)
async def dashboard_page(
    request: Request,
    user: User = Depends(require_session),
    web: WebSession = Depends(get_web_session),
):
    results = await asyncio.gather(
        NotificationService(web.client).unread_count(),
        BranchService(web.client).current_user_branch(),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, Exception):
            raise result
    unread, branch = results
    return render(request, "dashboard.html", {"user": user, "unread_count": unread, "branch": branch})


@router.get("/members", response_class=HTMLResponse)
async def members_page(
    request: Request,
    search: str = "",
    page: int = 1,
    web: WebSession = Depends(get_web_session),
):
    members = await MemberService(web.client).list(search=search.strip(), page=page)
    return render(request, "members.html", {"members": members, "search": search, "page": page})


@router.get("/notifications", response_class=HTMLResponse)
async def notifications_page(
    request: Request,
    page: int = 1,
    status: str | None = None,
    web: WebSession = Depends(get_web_session),
):
    selected = status if status in ("UNREAD", "READ") else None
    result = await NotificationService(web.client).list(page=page, status=selected)  # type: ignore[arg-type]
    return render(request, "notifications.html", {"result": result, "status": selected or ""})


@router.post("/notifications/{notification_id}/read")
async def notification_mark_read(notification_id: str, web: WebSession = Depends(get_web_session)):
    await NotificationService(web.client).mark_read(notification_id)
    return RedirectResponse(url="/dashboard/notifications", status_code=302)


@router.post("/notifications/read-all")
async def notifications_mark_all(web: WebSession = Depends(get_web_session)):
    await NotificationService(web.client).mark_all_read()
    return RedirectResponse(url="/dashboard/notifications", status_code=302)


@router.get("/profile", response_class=HTMLResponse)
def profile_page(request: Request, user: User = Depends(require_session)):
    return render(request, "profile.html", {"user": user})


@router.post("/profile", response_class=HTMLResponse)
async def profile_submit(
    request: Request,
    first_name: str = Form(""),
    last_name: str = Form(""),
    user: User = Depends(require_session),
    web: WebSession = Depends(get_web_session),
):
    changes = {"firstName": first_name.strip(), "lastName": last_name.strip()}
    try:
        updated = await web.auth.update_profile({key: value for key, value in changes.items() if value})
    except ApiError as exc:
        if web.navigator.target:
            raise
        return render(request, "profile.html", {"user": user, "error": exc.message}, status_code=400)
    return render(request, "profile.html", {"user": updated, "saved": True})


@router.get("/locked-accounts", response_class=HTMLResponse)
async def locked_accounts_page(
    request: Request,
    unlocked: str | None = None,
    _: User = Depends(require_admin),
    web: WebSession = Depends(get_web_session),
):
    accounts = await UserService(web.client).locked_accounts()
    return render(request, "locked_accounts.html", {"accounts": accounts, "unlocked": unlocked})


@router.post("/locked-accounts/{user_id}/unlock")
async def unlock_account(
    user_id: str,
    _: User = Depends(require_admin),
    web: WebSession = Depends(get_web_session),
):
    await UserService(web.client).unlock(user_id)
    logger.info("Account %s unlocked", user_id)
    return RedirectResponse(url=f"/dashboard/locked-accounts?unlocked={user_id}", status_code=302)


@router.get("/users", response_class=HTMLResponse)
async def users_page(
    request: Request,
    _: User = Depends(require_user_admin),
    web: WebSession = Depends(get_web_session),
):
    users = await UserService(web.client).list()
    return render(request, "users.html", {"users": users})
