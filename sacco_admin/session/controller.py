"""Login, two-factor, logout and password-change orchestration.

The controller is a small state machine over the ``TokenStore``::

    anonymous -> credentials-submitted -> authenticated
                                       -> otp-pending -> authenticated | abandoned
                                       -> password-change-required -> anonymous (fresh login)

Persisted states are derived from storage on every read, so a controller built
for one request sees what an earlier request left behind.
"""

from __future__ import annotations

import logging
import re
import time
from enum import Enum
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from ..core.errors import ApiError, LoginFailed, NotAuthenticated, ValidationFailed
from ..core.security import validate_new_password
from ..schemas.auth import ChangePasswordRequest, LoginResponse, PendingTwoFactor, PendingUserData, User
from ..services.api_client import SaccoApiClient, unwrap
from .token_store import TokenStore

logger = logging.getLogger(__name__)

PENDING_2FA_KEY = "pendingTwoFactor"
PENDING_USER_KEY = "pendingUserData"
DEFAULT_OTP_EXPIRY = 300
OTP_PATTERN = re.compile(r"^\d{6}$")


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    CREDENTIALS_SUBMITTED = "credentials-submitted"
    OTP_PENDING = "otp-pending"
    PASSWORD_CHANGE_REQUIRED = "password-change-required"
    AUTHENTICATED = "authenticated"
    ABANDONED = "abandoned"


class AuthController:
    def __init__(
        self,
        client: SaccoApiClient,
        store: TokenStore | None = None,
        *,
        pending_ttl: float = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.store = store or client.store
        self.pending_ttl = pending_ttl
        self._clock = clock
        self._submitting = False
        self._abandoned = False

    # ---- reads

    @property
    def state(self) -> AuthState:
        if self._submitting:
            return AuthState.CREDENTIALS_SUBMITTED
        if self.is_authenticated():
            return AuthState.AUTHENTICATED
        if self.pending_two_factor() is not None:
            return AuthState.OTP_PENDING
        if self.pending_password_change() is not None:
            return AuthState.PASSWORD_CHANGE_REQUIRED
        if self._abandoned:
            return AuthState.ABANDONED
        return AuthState.ANONYMOUS

    def get_current_user(self) -> User | None:
        return self.store.get_current_user()

    def is_authenticated(self) -> bool:
        return self.store.has_session()

    def pending_two_factor(self) -> PendingTwoFactor | None:
        pending = self._load_pending(PENDING_2FA_KEY, PendingTwoFactor)
        return pending if isinstance(pending, PendingTwoFactor) else None

    def pending_password_change(self) -> PendingUserData | None:
        pending = self._load_pending(PENDING_USER_KEY, PendingUserData)
        return pending if isinstance(pending, PendingUserData) else None

    def _load_pending(self, key: str, model: type[PendingTwoFactor] | type[PendingUserData]) -> Any:
        raw = self.store.get_transient(key)
        if raw is None:
            return None
        try:
            pending = model.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding unreadable %s", key)
            self.store.pop_transient(key)
            return None
        if self._clock() - pending.created_at > self.pending_ttl:
            logger.info("%s expired; treating the login as abandoned", key)
            self.store.pop_transient(key)
            self._abandoned = True
            return None
        return pending

    # ---- login / two-factor

    async def login(self, email: str, password: str, branch_id: str | None = None) -> LoginResponse:
        payload: dict[str, Any] = {"email": email, "password": password}
        if branch_id:
            payload["branchId"] = branch_id

        self._submitting = True
        self._abandoned = False
        try:
            data = await self.client.post("users/login", json=payload, skip_auth=True)
        except ApiError as exc:
            logger.info("Login failed for %s: %s", email, exc.message)
            raise LoginFailed.from_api_error(exc) from exc
        finally:
            self._submitting = False

        response = LoginResponse.model_validate(data or {})
        if response.requires_two_factor:
            self._enter_two_factor(response, email)
            return response
        if not response.token or response.user is None:
            raise LoginFailed(response.message or "Login response did not include a session")
        self._establish(response.token, response.user)
        return response

    def _enter_two_factor(self, response: LoginResponse, email: str) -> None:
        if response.user_id is None:
            raise LoginFailed("Two-factor login response did not identify the user")
        # a pending verification never shares the store with a live session
        self.store.clear_session()
        self.store.pop_transient(PENDING_USER_KEY)
        pending = PendingTwoFactor(
            user_id=response.user_id,
            two_factor_method=response.two_factor_method or "email",
            email=email,
            created_at=self._clock(),
            expires_in=response.expires_in,
        )
        self.store.set_transient(PENDING_2FA_KEY, pending.model_dump(by_alias=True, mode="json"))
        logger.info("Two-factor verification required for user %s", response.user_id)

    def _establish(self, token: str, user: User) -> None:
        self.store.pop_transient(PENDING_2FA_KEY)
        if user.password_change_required:
            # held outside the durable session until the password is changed
            self.store.clear_session()
            pending = PendingUserData(token=token, user=user, created_at=self._clock())
            self.store.set_transient(PENDING_USER_KEY, pending.model_dump(by_alias=True, mode="json"))
            logger.info("User %s must change password before continuing", user.id)
            return
        self.store.pop_transient(PENDING_USER_KEY)
        self.store.set_session(token, user)
        self.store.touch(self._clock())
        logger.info("Session established for user %s", user.id)

    async def request_otp(self, user_id: str | int) -> int:
        data = await self.client.post("auth/2fa/request-otp", json={"userId": user_id}, skip_auth=True)
        expires_in = _field(data, "expiresIn")
        return int(expires_in or DEFAULT_OTP_EXPIRY)

    async def verify_otp(self, user_id: str | int, code: str) -> LoginResponse:
        code = (code or "").strip()
        if not OTP_PATTERN.match(code):
            raise ValidationFailed(["Please enter a complete 6-digit verification code"])

        data = await self.client.post(
            "auth/2fa/verify-otp",
            json={"userId": user_id, "otp": code},
            skip_auth=True,
        )
        response = LoginResponse.model_validate(_session_payload(data))
        if not response.token or response.user is None:
            raise ApiError(response.message or "Verification did not return a session", details=data)
        self._establish(response.token, response.user)
        return response

    def abandon_two_factor(self) -> None:
        self.store.pop_transient(PENDING_2FA_KEY)
        self._abandoned = True

    # ---- logout

    async def logout(self) -> None:
        with self.client.logging_out():
            try:
                if self.store.get_token():
                    await self.client.post("auth/logout")
            except ApiError as exc:
                logger.warning("Logout request failed; clearing local session anyway: %s", exc.message)
            finally:
                self.store.clear_session()
                self.store.clear_transient()
        logger.info("Session cleared")

    # ---- password / profile

    async def change_password(self, current_password: str, new_password: str, confirmation: str | None = None) -> bool:
        """Change the password; returns True when a fresh login is now required."""

        pending = self.pending_password_change()
        if pending is None and not self.is_authenticated():
            raise NotAuthenticated("Changing a password requires a session")
        validate_new_password(new_password, confirmation)

        try:
            body = ChangePasswordRequest(
                current_password=current_password, new_password=new_password
            ).model_dump(by_alias=True)
        except ValidationError as exc:
            raise ValidationFailed(["Current password is required"]) from exc
        if pending is not None:
            await self.client.post(
                "auth/change-password",
                json=body,
                headers={"Authorization": f"Bearer {pending.token}"},
                skip_auth=True,
            )
            self.store.pop_transient(PENDING_USER_KEY)
            self.store.clear_session()
            logger.info("Required password change completed for user %s", pending.user.id)
            return True

        await self.client.post("auth/change-password", json=body)
        token, user = self.store.get_token(), self.store.get_current_user()
        if token and user is not None and user.password_change_required:
            self.store.set_session(token, user.model_copy(update={"password_change_required": False}))
            logger.info("Password change requirement cleared for user %s", user.id)
        return False

    async def update_profile(self, changes: Mapping[str, Any]) -> User:
        token = self.store.get_token()
        current = self.store.get_current_user()
        if token is None or current is None:
            raise NotAuthenticated("Updating a profile requires a session")
        data = await self.client.patch("users/profile", json=dict(changes))
        record = unwrap(data)
        if isinstance(record, dict) and "user" in record:
            record = record["user"]
        if isinstance(record, dict):
            user = User.model_validate({**current.to_storage(), **record})
        else:
            user = User.model_validate({**current.to_storage(), **dict(changes)})
        self.store.set_session(token, user)
        return user


def _session_payload(data: Any) -> dict[str, Any]:
    """Accept both ``{token, user}`` and ``{data: {token, user}}`` bodies."""

    if isinstance(data, dict) and "token" in data:
        return data
    inner = unwrap(data)
    return inner if isinstance(inner, dict) else {}


def _field(data: Any, key: str) -> Any:
    for candidate in (data, unwrap(data)):
        if isinstance(candidate, dict) and candidate.get(key) is not None:
            return candidate[key]
    return None
