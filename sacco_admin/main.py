"""Application factory and top-level wiring for the SACCO admin front end.

WHAT: Builds the FastAPI app: session cookie, middleware stack, routers,
exception handlers, the shared backend HTTP client, metrics and health.
WHEN: ``create_app()`` runs once at import for ``sacco_admin.main:app``; tests
call it directly with their own settings and a mocked HTTP client.
WHY: One place shows how a page request travels: session cookie first, then
the system status gate, then the auth and role dependencies on each route.
HOW: Starlette wraps middleware in reverse order of ``add_middleware``, so the
session middleware is added last to sit outermost.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import AppSettings, get_settings
from .core.errors import (
    ApiError,
    NavigationRequired,
    api_error_handler,
    http_exception_handler,
    navigation_required_handler,
    validation_exception_handler,
)
from .core.jinja import get_templates
from .core.logging import configure_logging
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware, SystemCheckMiddleware
from .routers import api_notifications, auth_ui, onboarding, ui
from .services.api_client import build_http_client

logger = logging.getLogger(__name__)


def create_app(settings: AppSettings | None = None, http_client: httpx.AsyncClient | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    app.state.templates = get_templates(settings)
    app.state.http = http_client
    owns_client = http_client is None

    @app.on_event("startup")
    async def _open_backend_client() -> None:
        if app.state.http is None:
            app.state.http = build_http_client(settings.API_URL, settings.API_TIMEOUT)
        logger.info("Backend API at %s", settings.API_URL)

    @app.on_event("shutdown")
    async def _close_backend_client() -> None:
        if owns_client and app.state.http is not None:
            await app.state.http.aclose()
            app.state.http = None

    if settings.static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    app.add_middleware(
        SystemCheckMiddleware,
        protected_prefixes=settings.protected_prefixes,
        enabled=settings.SYSTEM_CHECK_ENABLED,
    )
    app.add_middleware(SecurityHeadersMiddleware, no_cache_prefixes=settings.protected_prefixes)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )

    app.include_router(auth_ui.router)
    app.include_router(onboarding.router)
    app.include_router(ui.router)
    app.include_router(api_notifications.router)

    app.add_exception_handler(NavigationRequired, navigation_required_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    # per-app registry so several apps (tests) can coexist in one process
    Instrumentator(registry=CollectorRegistry()).instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()
