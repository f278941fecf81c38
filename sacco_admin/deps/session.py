"""Per-request session wiring for the HTML pages.

WHAT: Builds the token store, navigator, API client and auth controller for
one request, and the dependencies that gate pages on them.
WHEN: Resolved by FastAPI for every route that declares ``Depends(...)`` on
these helpers; the bundle is cached on ``request.state``.
WHY: Session components are framework agnostic; this is the only place that
knows they live inside a Starlette signed-cookie session.
HOW: The durable store is ``request.session`` itself and the transient store a
nested ``"transient"`` dict inside it. Navigations are recorded and turned
into 302 responses by ``NavigationRequired`` or the ``ApiError`` handler.
"""

from __future__ import annotations

import time
from typing import Any, Iterable

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from ..core.config import AppSettings
from ..core.errors import NavigationRequired
from ..middlewares.context import principal_ctx_var
from ..schemas.auth import User
from ..services.api_client import SaccoApiClient, SessionFlags
from ..session.controller import AuthController
from ..session.guards import AuthGuard, RoleGuard
from ..session.navigation import LOGIN_PATH, UNAUTHORIZED_PATH, RecordingNavigator, login_url
from ..session.token_store import TokenStore

TRANSIENT_KEY = "transient"
CHANGE_PASSWORD_PATH = "/change-password"


class WebSession:
    def __init__(self, request: Request, settings: AppSettings) -> None:
        self.settings = settings
        self.navigator = RecordingNavigator(request.url.path)
        transient = request.session.get(TRANSIENT_KEY)
        if not isinstance(transient, dict):
            transient = request.session[TRANSIENT_KEY] = {}
        self.store = TokenStore(request.session, transient)
        self.client = SaccoApiClient(
            request.app.state.http,
            self.store,
            self.navigator,
            flags=SessionFlags(settings.REDIRECT_COOLDOWN),
            redirect_delay=settings.REDIRECT_DELAY,
        )
        self.auth = AuthController(self.client, self.store, pending_ttl=settings.PENDING_STATE_TTL)


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_web_session(request: Request) -> WebSession:
    web = getattr(request.state, "web_session", None)
    if web is None:
        web = WebSession(request, get_settings(request))
        request.state.web_session = web
        request.state.navigator = web.navigator
    return web


def get_client(web: WebSession = Depends(get_web_session)) -> SaccoApiClient:
    return web.client


async def require_session(request: Request, web: WebSession = Depends(get_web_session)) -> User:
    """Gate a page on a live, non-idle session and return the signed-in user."""

    settings = web.settings
    guard = AuthGuard(web.store, web.navigator, settings.protected_prefixes)
    if not guard.check(request.url.path):
        raise NavigationRequired(web.navigator.target or LOGIN_PATH)

    user = web.store.get_current_user()
    if user is None or web.store.get_token() is None:
        web.store.clear_session()
        raise NavigationRequired(login_url("session-expired"))

    now = time.time()
    last = web.store.last_activity()
    if last is not None and now - last > settings.SESSION_IDLE_TIMEOUT_MIN * 60:
        web.store.clear_session()
        web.store.clear_transient()
        raise NavigationRequired(login_url("session-expired"))
    web.store.touch(now)
    if user.password_change_required:
        raise NavigationRequired(CHANGE_PASSWORD_PATH)

    principal_ctx_var.set(str(user.id))
    return user


class RequireRoles:
    """Dependency restricting a route to users holding one of ``roles``."""

    def __init__(self, *roles: Any) -> None:
        self.roles: Iterable[Any] = roles

    async def __call__(
        self,
        web: WebSession = Depends(get_web_session),
        user: User = Depends(require_session),
    ) -> User:
        guard = RoleGuard(self.roles, web.navigator)
        if not guard.check(web.store):
            raise NavigationRequired(web.navigator.target or UNAUTHORIZED_PATH)
        return user


def render(request: Request, name: str, context: dict[str, Any] | None = None, status_code: int = 200) -> Response:
    """Render ``name`` unless a session component asked to navigate away."""

    navigator = getattr(request.state, "navigator", None)
    target = getattr(navigator, "target", None)
    if target:
        return RedirectResponse(url=target, status_code=302)
    web = getattr(request.state, "web_session", None)
    page_context = {"current_user": web.store.get_current_user() if web else None}
    page_context.update(context or {})
    templates = request.app.state.templates
    return templates.TemplateResponse(request, name, page_context, status_code=status_code)
