from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A non-success answer (or no answer) from the SACCO backend."""

    def __init__(self, message: str, *, status_code: int | None = None, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        body = decode_body(response)
        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("detail") or body.get("error")
        if not isinstance(message, str) or not message:
            message = f"HTTP error {response.status_code}"
        return cls(message, status_code=response.status_code, details=body)

    @property
    def field_errors(self) -> list[dict[str, Any]]:
        """Field level validation errors reported by the backend, if any."""

        if isinstance(self.details, dict):
            errors = self.details.get("errors")
            if isinstance(errors, list):
                return [item for item in errors if isinstance(item, dict)]
        return []


class Unauthorized(ApiError):
    """The backend rejected the presented credentials (HTTP 401)."""


class BackendUnavailable(ApiError):
    """The backend could not be reached at all."""


class LoginFailed(ApiError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
        attempts_remaining: int | None = None,
        lockout_until: str | None = None,
        permanently_locked: bool = False,
    ) -> None:
        super().__init__(message, status_code=status_code, details=details)
        self.attempts_remaining = attempts_remaining
        self.lockout_until = lockout_until
        self.permanently_locked = permanently_locked

    @classmethod
    def from_api_error(cls, exc: ApiError) -> "LoginFailed":
        body = exc.details if isinstance(exc.details, dict) else {}
        return cls(
            exc.message,
            status_code=exc.status_code,
            details=exc.details,
            attempts_remaining=body.get("attemptsRemaining"),
            lockout_until=body.get("lockoutUntil"),
            permanently_locked=bool(body.get("permanentlyLocked")),
        )


class ValidationFailed(Exception):
    """Input rejected before anything was sent to the backend."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class PasswordPolicyError(ValidationFailed):
    pass


class NotAuthenticated(Exception):
    pass


class NavigationRequired(Exception):
    """Raised by request dependencies that decided the browser must go elsewhere."""

    def __init__(self, url: str) -> None:
        super().__init__(url)
        self.url = url


def decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        text = response.text
        return {"message": text} if text else None


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept and not request.url.path.startswith("/api")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        if _wants_html(request) and not request.url.path.startswith("/login"):
            return RedirectResponse(url=f"/login?next={request.url.path}", status_code=302)
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": exc.errors()},
        )
    raise exc


async def navigation_required_handler(request: Request, exc: NavigationRequired):
    return RedirectResponse(url=exc.url, status_code=302)


async def api_error_handler(request: Request, exc: ApiError):
    navigator = getattr(request.state, "navigator", None)
    target = getattr(navigator, "target", None)
    if target:
        if request.url.path.startswith("/api"):
            return ErrorEnvelope(
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="session_expired",
                message=exc.message,
                details={"redirect": target},
            )
        return RedirectResponse(url=target, status_code=302)

    status_code = exc.status_code or status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, BackendUnavailable):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    if status_code < 400:
        status_code = status.HTTP_502_BAD_GATEWAY

    if _wants_html(request):
        templates = request.app.state.templates
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": exc.message, "field_errors": exc.field_errors},
            status_code=status_code,
        )
    return ErrorEnvelope(
        status_code=status_code,
        code="backend_unavailable" if isinstance(exc, BackendUnavailable) else "backend_error",
        message=exc.message,
        details=exc.details if isinstance(exc.details, dict) else None,
    )
