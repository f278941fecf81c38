import asyncio

import httpx
import pytest

from sacco_admin.core.errors import ApiError, BackendUnavailable, Unauthorized
from sacco_admin.services.api_client import RedirectGuard, SaccoApiClient, SessionFlags, unwrap
from sacco_admin.session.navigation import RecordingNavigator
from sacco_admin.session.token_store import TokenStore


def make_client(backend, admin_user=None, path="/dashboard", **kwargs):
    store = TokenStore({}, {})
    if admin_user is not None:
        store.set_session("tok-1", admin_user)
    navigator = RecordingNavigator(path)
    client = SaccoApiClient(backend.http_client(), store, navigator, **kwargs)
    return client, store, navigator


def test_bearer_token_is_read_at_send_time(backend, admin_user):
    backend.on("GET", "members", json={"data": []})

    async def scenario():
        client, store, _ = make_client(backend)
        await client.get("members")
        store.set_session("tok-2", admin_user)
        await client.get("members")

    asyncio.run(scenario())
    first, second = backend.calls("GET", "members")
    assert "authorization" not in first.headers
    assert second.headers["authorization"] == "Bearer tok-2"


def test_skip_auth_sends_no_token(backend, admin_user):
    backend.on("POST", "users/login", json={"status": "success"})

    async def scenario():
        client, _, _ = make_client(backend, admin_user)
        await client.post("users/login", json={"email": "x"}, skip_auth=True)

    asyncio.run(scenario())
    assert "authorization" not in backend.calls("POST", "users/login")[0].headers


def test_concurrent_401s_navigate_to_login_once(backend, admin_user):
    backend.on("GET", "members", status=401, json={"message": "Token expired"})
    backend.on("GET", "branches", status=401, json={"message": "Token expired"})
    expired = []

    async def scenario():
        client, store, navigator = make_client(backend, admin_user)
        client.on_token_expired(lambda: expired.append(True))
        results = await asyncio.gather(
            client.get("members"), client.get("branches"), client.get("members"), return_exceptions=True
        )
        return store, navigator, results

    store, navigator, results = asyncio.run(scenario())
    assert all(isinstance(result, Unauthorized) for result in results)
    assert len(navigator.history) == 1
    assert navigator.target.startswith("/login?message=session-expired&t=")
    assert store.get_token() is None
    assert store.get_current_user() is None
    assert len(expired) == 3


def test_redirect_guard_reopens_after_cooldown(backend, admin_user, clock):
    backend.on("GET", "members", status=401, json={"message": "expired"})

    async def scenario():
        client, store, navigator = make_client(
            backend, admin_user, flags=SessionFlags(redirect_cooldown=3.0, clock=clock)
        )
        with pytest.raises(Unauthorized):
            await client.get("members")
        clock.advance(1)
        store.set_session("tok-2", {"id": 1, "email": "a@b.c", "role": "clerk"})
        with pytest.raises(Unauthorized):
            await client.get("members")
        assert len(navigator.history) == 1
        clock.advance(5)
        with pytest.raises(Unauthorized):
            await client.get("members")
        return navigator

    navigator = asyncio.run(scenario())
    assert len(navigator.history) == 2


def test_redirect_guard_reset():
    guard = RedirectGuard(cooldown=60)
    assert guard.acquire()
    assert guard.active
    assert not guard.acquire()
    guard.reset()
    assert guard.acquire()


def test_401_while_logging_out_has_no_side_effects(backend, admin_user):
    backend.on("POST", "auth/logout", status=401, json={"message": "expired"})
    expired = []

    async def scenario():
        client, store, navigator = make_client(backend, admin_user)
        client.on_token_expired(lambda: expired.append(True))
        with client.logging_out():
            with pytest.raises(Unauthorized):
                await client.post("auth/logout")
        return client, store, navigator

    client, store, navigator = asyncio.run(scenario())
    assert navigator.history == []
    assert store.get_token() == "tok-1"
    assert expired == []
    assert client.flags.logging_out is False


def test_401_on_login_page_clears_but_does_not_navigate(backend, admin_user):
    backend.on("GET", "notifications/unread-count", status=401, json={"message": "expired"})

    async def scenario():
        client, store, navigator = make_client(backend, admin_user, path="/login")
        with pytest.raises(Unauthorized):
            await client.get("notifications/unread-count")
        return store, navigator

    store, navigator = asyncio.run(scenario())
    assert navigator.history == []
    assert not store.has_session()


def test_401_on_skip_auth_request_keeps_session(backend, admin_user):
    backend.on("POST", "users/login", status=401, json={"message": "Invalid credentials"})

    async def scenario():
        client, store, navigator = make_client(backend, admin_user)
        with pytest.raises(Unauthorized):
            await client.post("users/login", json={}, skip_auth=True)
        return store, navigator

    store, navigator = asyncio.run(scenario())
    assert store.has_session()
    assert navigator.history == []


def test_unregistered_listener_is_not_called(backend, admin_user):
    backend.on("GET", "members", status=401, json={})
    calls = []

    async def scenario():
        client, _, _ = make_client(backend, admin_user)
        remove = client.on_token_expired(lambda: calls.append(True))
        remove()
        with pytest.raises(Unauthorized):
            await client.get("members")

    asyncio.run(scenario())
    assert calls == []


def test_delayed_redirect_is_scheduled_on_the_loop(backend, admin_user):
    backend.on("GET", "members", status=401, json={})

    async def scenario():
        client, _, navigator = make_client(backend, admin_user, redirect_delay=0.01)
        with pytest.raises(Unauthorized):
            await client.get("members")
        assert navigator.history == []
        await asyncio.sleep(0.05)
        return navigator

    navigator = asyncio.run(scenario())
    assert len(navigator.history) == 1


def test_error_body_becomes_api_error(backend, admin_user):
    backend.on(
        "POST",
        "members",
        status=422,
        json={"message": "Validation failed", "errors": [{"field": "email", "message": "Invalid"}]},
    )

    async def scenario():
        client, _, _ = make_client(backend, admin_user)
        with pytest.raises(ApiError) as excinfo:
            await client.post("members", json={})
        return excinfo.value

    error = asyncio.run(scenario())
    assert error.status_code == 422
    assert error.message == "Validation failed"
    assert error.field_errors == [{"field": "email", "message": "Invalid"}]


def test_plain_text_error_falls_back_to_status_message(backend, admin_user):
    backend.on("GET", "members", handler=lambda request: httpx.Response(500))

    async def scenario():
        client, _, _ = make_client(backend, admin_user)
        with pytest.raises(ApiError) as excinfo:
            await client.get("members")
        return excinfo.value

    error = asyncio.run(scenario())
    assert error.status_code == 500
    assert error.message == "HTTP error 500"


def test_transport_failure_is_backend_unavailable(backend, admin_user):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("GET", "members", handler=refuse)

    async def scenario():
        client, store, _ = make_client(backend, admin_user)
        with pytest.raises(BackendUnavailable) as excinfo:
            await client.get("members")
        return store, excinfo.value

    store, error = asyncio.run(scenario())
    assert error.status_code is None
    assert store.has_session()


def test_no_content_returns_none(backend, admin_user):
    backend.on("DELETE", "members/3", status=204)

    async def scenario():
        client, _, _ = make_client(backend, admin_user)
        return await client.delete("members/3")

    assert asyncio.run(scenario()) is None


def test_unwrap_handles_enveloped_and_bare_payloads():
    assert unwrap({"data": [1]}) == [1]
    assert unwrap([1]) == [1]
    assert unwrap({"setting": 2}, key="setting") == 2
