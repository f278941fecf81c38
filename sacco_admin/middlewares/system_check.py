from __future__ import annotations

import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from ..services.api_client import SaccoApiClient
from ..services.onboarding import OnboardingService
from ..session.navigation import RecordingNavigator
from ..session.system_gate import SystemStatusGate
from ..session.token_store import TokenStore

logger = logging.getLogger(__name__)

EXEMPT_PREFIXES = ("/static", "/health", "/metrics", "/api/")


class SystemCheckMiddleware(BaseHTTPMiddleware):
    """Run the system status gate once per HTML page load.

    A failed status check renders ``system_check.html`` (503) with a retry
    link instead of the requested page.
    """

    def __init__(self, app, protected_prefixes: Iterable[str] = (), enabled: bool = True) -> None:  # type: ignore[override]
        super().__init__(app)
        self.protected_prefixes = list(protected_prefixes)
        self.enabled = enabled

    def applies_to(self, request: Request) -> bool:
        if not self.enabled or request.method != "GET":
            return False
        path = request.url.path
        return not any(path.startswith(prefix) for prefix in EXEMPT_PREFIXES)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.applies_to(request):
            return await call_next(request)

        navigator = RecordingNavigator(request.url.path)
        # the status endpoint is public; no credentials are attached
        client = SaccoApiClient(request.app.state.http, TokenStore({}), None)
        gate = SystemStatusGate(OnboardingService(client), navigator, self.protected_prefixes)
        status = await gate.load()
        request.state.system_status = status

        if gate.failed:
            templates = request.app.state.templates
            return templates.TemplateResponse(
                request,
                "system_check.html",
                {"error": gate.error, "retry_url": str(request.url)},
                status_code=503,
            )

        target = gate.route()
        if target is not None:
            return RedirectResponse(url=target, status_code=302)
        return await call_next(request)
