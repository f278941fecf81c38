"""Login, two-factor verification, password change and logout pages.

None of these routes sit behind ``require_session``; each one reads the auth
controller's state and decides for itself where the browser belongs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.errors import ApiError, LoginFailed, NotAuthenticated, ValidationFailed
from ..deps.session import WebSession, get_web_session, render
from ..session.navigation import LOGIN_PATH, login_url

router = APIRouter()

# Cookies older front ends may have left behind with a bearer token in them.
LEGACY_TOKEN_COOKIES = ("token", "auth_token")

LOGIN_MESSAGES = {
    "session-expired": "Your session has expired. Please sign in again.",
    "unauthorized": "Please sign in to continue.",
    "password-changed": "Your password was changed. Sign in with your new password.",
    "onboarding-complete": "Setup is complete. Sign in with the administrator account.",
    "verification-expired": "Verification took too long. Please sign in again.",
}

DEFAULT_LANDING = "/dashboard"


def _safe_next(value: str | None) -> str:
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return DEFAULT_LANDING


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


def _clear_legacy_cookies(response: RedirectResponse) -> RedirectResponse:
    for name in LEGACY_TOKEN_COOKIES:
        response.delete_cookie(name, path="/")
    return response


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    message: str | None = None,
    next: str | None = None,
    web: WebSession = Depends(get_web_session),
):
    if web.auth.is_authenticated():
        return _redirect(_safe_next(next))
    return render(
        request,
        "login.html",
        {"notice": LOGIN_MESSAGES.get(message or ""), "next": next or "", "email": ""},
    )


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    branch_id: str = Form(""),
    next: str = Form(""),
    web: WebSession = Depends(get_web_session),
):
    if not email or not password:
        return render(
            request,
            "login.html",
            {"error": "Email and password are required", "email": email, "next": next},
            status_code=400,
        )
    try:
        response = await web.auth.login(email.strip(), password, branch_id or None)
    except LoginFailed as exc:
        context = {
            "error": exc.message,
            "attempts_remaining": exc.attempts_remaining,
            "lockout_until": exc.lockout_until,
            "permanently_locked": exc.permanently_locked,
            "email": email,
            "next": next,
        }
        status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 401
        return render(request, "login.html", context, status_code=status_code)

    if response.requires_two_factor:
        return _redirect("/login/verify")
    if web.auth.pending_password_change() is not None:
        return _clear_legacy_cookies(_redirect("/change-password"))
    return _redirect(_safe_next(next))


@router.get("/login/verify", response_class=HTMLResponse)
def verify_page(request: Request, web: WebSession = Depends(get_web_session)):
    pending = web.auth.pending_two_factor()
    if pending is None:
        return _redirect(login_url("verification-expired"))
    return render(request, "otp.html", {"pending": pending})


@router.post("/login/verify", response_class=HTMLResponse)
async def verify_submit(request: Request, code: str = Form(""), web: WebSession = Depends(get_web_session)):
    pending = web.auth.pending_two_factor()
    if pending is None:
        return _redirect(login_url("verification-expired"))
    try:
        await web.auth.verify_otp(pending.user_id, code)
    except ValidationFailed as exc:
        return render(request, "otp.html", {"pending": pending, "error": exc.errors[0]}, status_code=400)
    except ApiError as exc:
        status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 400
        return render(request, "otp.html", {"pending": pending, "error": exc.message}, status_code=status_code)

    if web.auth.pending_password_change() is not None:
        return _clear_legacy_cookies(_redirect("/change-password"))
    return _redirect(DEFAULT_LANDING)


@router.post("/login/verify/resend", response_class=HTMLResponse)
async def verify_resend(request: Request, web: WebSession = Depends(get_web_session)):
    pending = web.auth.pending_two_factor()
    if pending is None:
        return _redirect(login_url("verification-expired"))
    try:
        expires_in = await web.auth.request_otp(pending.user_id)
    except ApiError as exc:
        return render(request, "otp.html", {"pending": pending, "error": exc.message}, status_code=502)
    minutes = max(1, expires_in // 60)
    notice = f"A new code was sent. It expires in {minutes} minute{'s' if minutes != 1 else ''}."
    return render(request, "otp.html", {"pending": pending, "notice": notice})


@router.post("/login/verify/cancel")
def verify_cancel(web: WebSession = Depends(get_web_session)):
    web.auth.abandon_two_factor()
    return _redirect(LOGIN_PATH)


@router.get("/change-password", response_class=HTMLResponse)
def change_password_page(request: Request, web: WebSession = Depends(get_web_session)):
    pending = web.auth.pending_password_change()
    if pending is None and not web.auth.is_authenticated():
        return _redirect(login_url("unauthorized"))
    user = pending.user if pending else web.auth.get_current_user()
    forced = pending is not None or bool(user and user.password_change_required)
    return render(request, "change_password.html", {"forced": forced, "user": user})


@router.post("/change-password", response_class=HTMLResponse)
async def change_password_submit(
    request: Request,
    current_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    web: WebSession = Depends(get_web_session),
):
    forced = web.auth.pending_password_change() is not None
    try:
        needs_login = await web.auth.change_password(current_password, new_password, confirm_password)
    except NotAuthenticated:
        return _redirect(login_url("unauthorized"))
    except ValidationFailed as exc:
        return render(request, "change_password.html", {"forced": forced, "errors": exc.errors}, status_code=400)
    except ApiError as exc:
        if web.navigator.target:
            return _redirect(web.navigator.target)
        status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 400
        return render(
            request,
            "change_password.html",
            {"forced": forced, "errors": [exc.message], "field_errors": exc.field_errors},
            status_code=status_code,
        )

    if needs_login:
        return _clear_legacy_cookies(_redirect(login_url("password-changed")))
    return render(request, "change_password.html", {"forced": False, "success": True})


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(web: WebSession = Depends(get_web_session)):
    await web.auth.logout()
    return _clear_legacy_cookies(_redirect(LOGIN_PATH))


@router.get("/unauthorized", response_class=HTMLResponse)
def unauthorized_page(request: Request):
    return render(request, "unauthorized.html", status_code=403)


@router.get("/")
def home(web: WebSession = Depends(get_web_session)):
    return _redirect(DEFAULT_LANDING if web.auth.is_authenticated() else LOGIN_PATH)
