from __future__ import annotations

import json
import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .context import principal_ctx_var, request_id_ctx_var

logger = logging.getLogger("sacco_admin.request")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id and log its outcome.

    The principal is the signed-in user's id, read from the session cookie so
    log lines from session components can be attributed.
    """

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid4())
        token = request_id_ctx_var.set(request_id)
        principal_token = principal_ctx_var.set(_principal(request))
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
            principal = principal_ctx_var.get()
        finally:
            request_id_ctx_var.reset(token)
            principal_ctx_var.reset(principal_token)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[self.header_name] = request_id
        response.headers.setdefault("X-Response-Time", f"{duration_ms:.2f}ms")
        extra = {
            "extra_data": {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
        }
        if principal:
            extra["extra_data"]["principal"] = principal
        logger.info("request.completed", extra=extra)
        return response


def _principal(request: Request) -> str | None:
    if "session" not in request.scope:
        return None
    raw = request.session.get("user")
    if not isinstance(raw, str):
        return None
    try:
        user = json.loads(raw)
    except ValueError:
        return None
    user_id = user.get("id") if isinstance(user, dict) else None
    return str(user_id) if user_id is not None else None
