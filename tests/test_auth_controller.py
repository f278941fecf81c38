import asyncio
import json

import httpx
import pytest

from sacco_admin.core.errors import LoginFailed, NotAuthenticated, PasswordPolicyError, ValidationFailed
from sacco_admin.services.api_client import SaccoApiClient
from sacco_admin.session.controller import PENDING_2FA_KEY, PENDING_USER_KEY, AuthController, AuthState
from sacco_admin.session.navigation import RecordingNavigator
from sacco_admin.session.token_store import TokenStore


def make_controller(backend, clock, path="/login"):
    durable, transient = {}, {}
    store = TokenStore(durable, transient)
    navigator = RecordingNavigator(path)
    client = SaccoApiClient(backend.http_client(), store, navigator)
    controller = AuthController(client, pending_ttl=600, clock=clock)
    return controller, store, navigator, transient


def body(request: httpx.Request):
    return json.loads(request.content)


def test_login_establishes_session(backend, clock, admin_user):
    backend.on("POST", "users/login", json={"status": "success", "token": "tok-1", "user": admin_user})

    async def scenario():
        controller, store, navigator, _ = make_controller(backend, clock)
        response = await controller.login("amina@sacco.test", "Secret1!", branch_id="b-1")
        return controller, store, navigator, response

    controller, store, navigator, response = asyncio.run(scenario())
    request = backend.calls("POST", "users/login")[0]
    assert body(request) == {"email": "amina@sacco.test", "password": "Secret1!", "branchId": "b-1"}
    assert "authorization" not in request.headers
    assert response.token == "tok-1"
    assert store.get_token() == "tok-1"
    assert controller.get_current_user().email == "amina@sacco.test"
    assert controller.state is AuthState.AUTHENTICATED
    assert store.last_activity() == clock.now
    assert navigator.history == []


def test_two_factor_login_persists_no_token_until_verified(backend, clock, admin_user):
    backend.on(
        "POST",
        "users/login",
        json={"status": "requires_2fa", "userId": 7, "twoFactorMethod": "email", "message": "OTP sent"},
    )
    backend.on(
        "POST",
        "auth/2fa/verify-otp",
        json={"status": "success", "data": {"token": "tok-2fa", "user": admin_user}},
    )

    async def scenario():
        controller, store, _, transient = make_controller(backend, clock)
        response = await controller.login("amina@sacco.test", "Secret1!")
        assert response.requires_two_factor
        assert store.get_token() is None
        assert controller.state is AuthState.OTP_PENDING
        assert controller.pending_two_factor().user_id == 7
        assert PENDING_2FA_KEY in transient

        await controller.verify_otp(7, "123456")
        return controller, store, transient

    controller, store, transient = asyncio.run(scenario())
    assert store.get_token() == "tok-2fa"
    assert controller.state is AuthState.AUTHENTICATED
    assert PENDING_2FA_KEY not in transient
    assert body(backend.calls("POST", "auth/2fa/verify-otp")[0]) == {"userId": 7, "otp": "123456"}


def test_otp_must_be_six_digits(backend, clock):
    async def scenario():
        controller, _, _, _ = make_controller(backend, clock)
        with pytest.raises(ValidationFailed):
            await controller.verify_otp(7, "12345")
        with pytest.raises(ValidationFailed):
            await controller.verify_otp(7, "12a456")

    asyncio.run(scenario())
    assert backend.requests == []


def test_request_otp_returns_expiry(backend, clock):
    backend.on("POST", "auth/2fa/request-otp", json={"success": True, "data": {"expiresIn": 120}})

    async def scenario():
        controller, _, _, _ = make_controller(backend, clock)
        return await controller.request_otp(7)

    assert asyncio.run(scenario()) == 120


def test_failed_login_carries_lockout_details_and_no_redirect(backend, clock):
    backend.on(
        "POST",
        "users/login",
        status=401,
        json={"message": "Invalid credentials", "attemptsRemaining": 2},
    )

    async def scenario():
        controller, store, navigator, _ = make_controller(backend, clock)
        with pytest.raises(LoginFailed) as excinfo:
            await controller.login("amina@sacco.test", "wrong")
        return controller, navigator, excinfo.value

    controller, navigator, error = asyncio.run(scenario())
    assert error.message == "Invalid credentials"
    assert error.attempts_remaining == 2
    assert navigator.history == []
    assert controller.state is AuthState.ANONYMOUS


def test_locked_account_login(backend, clock):
    backend.on(
        "POST",
        "users/login",
        status=423,
        json={"message": "Account locked", "lockoutUntil": "2026-10-17T10:00:00Z", "permanentlyLocked": True},
    )

    async def scenario():
        controller, _, _, _ = make_controller(backend, clock)
        with pytest.raises(LoginFailed) as excinfo:
            await controller.login("amina@sacco.test", "wrong")
        return excinfo.value

    error = asyncio.run(scenario())
    assert error.permanently_locked
    assert error.lockout_until == "2026-10-17T10:00:00Z"


def test_forced_password_change_uses_pending_token_then_requires_login(backend, clock, admin_user):
    user = {**admin_user, "passwordChangeRequired": True}
    backend.on("POST", "users/login", json={"status": "success", "token": "tok-pending", "user": user})
    backend.on("POST", "auth/change-password", json={"success": True})

    async def scenario():
        controller, store, _, transient = make_controller(backend, clock)
        await controller.login("amina@sacco.test", "Temp1234!")
        assert store.get_token() is None
        assert controller.state is AuthState.PASSWORD_CHANGE_REQUIRED
        assert PENDING_USER_KEY in transient

        needs_login = await controller.change_password("Temp1234!", "N3w!Password", "N3w!Password")
        return controller, store, transient, needs_login

    controller, store, transient, needs_login = asyncio.run(scenario())
    request = backend.calls("POST", "auth/change-password")[0]
    assert request.headers["authorization"] == "Bearer tok-pending"
    assert body(request) == {"currentPassword": "Temp1234!", "newPassword": "N3w!Password"}
    assert needs_login is True
    assert store.get_token() is None
    assert PENDING_USER_KEY not in transient
    assert controller.state is AuthState.ANONYMOUS


def test_pending_state_expires_into_abandoned(backend, clock):
    backend.on("POST", "users/login", json={"status": "requires_2fa", "userId": 7})

    async def scenario():
        controller, _, _, transient = make_controller(backend, clock)
        await controller.login("amina@sacco.test", "Secret1!")
        clock.advance(601)
        return controller, transient

    controller, transient = asyncio.run(scenario())
    assert controller.pending_two_factor() is None
    assert controller.state is AuthState.ABANDONED
    assert transient == {}


def test_abandon_two_factor(backend, clock):
    backend.on("POST", "users/login", json={"status": "requires_2fa", "userId": 7})

    async def scenario():
        controller, _, _, _ = make_controller(backend, clock)
        await controller.login("amina@sacco.test", "Secret1!")
        controller.abandon_two_factor()
        return controller

    controller = asyncio.run(scenario())
    assert controller.state is AuthState.ABANDONED


def test_change_password_checks_policy_before_calling_backend(backend, clock, admin_user):
    async def scenario():
        controller, store, _, _ = make_controller(backend, clock)
        store.set_session("tok-1", admin_user)
        with pytest.raises(PasswordPolicyError):
            await controller.change_password("old", "weak")

    asyncio.run(scenario())
    assert backend.requests == []


def test_change_password_needs_a_session(backend, clock):
    async def scenario():
        controller, _, _, _ = make_controller(backend, clock)
        with pytest.raises(NotAuthenticated):
            await controller.change_password("old", "N3w!Password")

    asyncio.run(scenario())


def test_regular_password_change_keeps_session(backend, clock, admin_user):
    backend.on("POST", "auth/change-password", json={"success": True})

    async def scenario():
        controller, store, _, _ = make_controller(backend, clock)
        store.set_session("tok-1", admin_user)
        return store, await controller.change_password("Old1234!", "N3w!Password")

    store, needs_login = asyncio.run(scenario())
    assert needs_login is False
    assert store.get_token() == "tok-1"
    assert backend.calls("POST", "auth/change-password")[0].headers["authorization"] == "Bearer tok-1"


@pytest.mark.parametrize("status", [200, 401, 500])
def test_logout_always_clears_and_never_redirects(backend, clock, admin_user, status):
    backend.on("POST", "auth/logout", status=status, json={"message": "bye"})

    async def scenario():
        controller, store, navigator, transient = make_controller(backend, clock, path="/dashboard")
        store.set_session("tok-1", admin_user)
        transient["leftover"] = True
        await controller.logout()
        return controller, store, navigator, transient

    controller, store, navigator, transient = asyncio.run(scenario())
    assert len(backend.calls("POST", "auth/logout")) == 1
    assert store.get_token() is None
    assert transient == {}
    assert navigator.history == []
    assert controller.client.flags.logging_out is False


def test_update_profile_merges_into_stored_user(backend, clock, admin_user):
    backend.on("PATCH", "users/profile", json={"data": {"firstName": "Mina"}})

    async def scenario():
        controller, store, _, _ = make_controller(backend, clock)
        store.set_session("tok-1", admin_user)
        return await controller.update_profile({"firstName": "Mina"}), store

    user, store = asyncio.run(scenario())
    assert user.first_name == "Mina"
    assert store.get_current_user().first_name == "Mina"
    assert store.get_current_user().email == admin_user["email"]


def test_regular_password_change_clears_stored_requirement(backend, clock, admin_user):
    backend.on("POST", "auth/change-password", json={"success": True})

    async def scenario():
        controller, store, _, _ = make_controller(backend, clock)
        store.set_session("tok-1", {**admin_user, "passwordChangeRequired": True})
        await controller.change_password("Old1234!", "N3w!Password", "N3w!Password")
        return store

    store = asyncio.run(scenario())
    assert store.get_token() == "tok-1"
    assert store.get_current_user().password_change_required is False


def test_change_password_requires_current_password(backend, clock, admin_user):
    async def scenario():
        controller, store, _, _ = make_controller(backend, clock)
        store.set_session("tok-1", admin_user)
        with pytest.raises(ValidationFailed) as excinfo:
            await controller.change_password("", "N3w!Password", "N3w!Password")
        return excinfo.value

    error = asyncio.run(scenario())
    assert error.errors == ["Current password is required"]
    assert backend.requests == []
