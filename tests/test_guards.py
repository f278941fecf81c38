import asyncio

from sacco_admin.session.guards import AuthGuard, RoleGuard, with_role_protection
from sacco_admin.session.navigation import RecordingNavigator
from sacco_admin.session.token_store import TOKEN_KEY, TokenStore

PROTECTED = ["/dashboard", "/members", "/accounting", "/budget"]


def test_anonymous_visit_to_protected_page_redirects_once():
    navigator = RecordingNavigator("/dashboard/reports")
    guard = AuthGuard(TokenStore({}), navigator, PROTECTED)

    assert guard.check() is False
    assert guard.check() is False
    assert len(navigator.history) == 1
    assert navigator.target.startswith("/login?message=session-expired")


def test_token_without_user_is_unauthorized_and_cleared():
    durable = {TOKEN_KEY: "tok-1"}
    navigator = RecordingNavigator("/members/12")
    guard = AuthGuard(TokenStore(durable), navigator, PROTECTED)

    assert guard.check() is False
    assert navigator.target.startswith("/login?message=unauthorized")
    assert durable == {}


def test_public_pages_and_live_sessions_pass(admin_user):
    store = TokenStore({})
    navigator = RecordingNavigator("/login")
    guard = AuthGuard(store, navigator, PROTECTED)
    assert guard.check()
    assert guard.check("/dashboarding")

    store.set_session("tok-1", admin_user)
    assert guard.check("/dashboard")
    assert navigator.history == []


def test_auth_guard_waits_while_loading():
    navigator = RecordingNavigator("/dashboard")
    guard = AuthGuard(TokenStore({}), navigator, PROTECTED)
    assert guard.check(loading=True) is False
    assert navigator.history == []


def test_role_guard_sends_manager_to_unauthorized(manager_user):
    store = TokenStore({})
    store.set_session("tok-1", manager_user)
    navigator = RecordingNavigator("/dashboard/locked-accounts")

    guard = RoleGuard(["admin"], navigator)
    assert guard.check(store) is False
    assert guard.check(store) is False
    assert navigator.history == ["/unauthorized"]


def test_role_guard_lets_admin_render(admin_user):
    store = TokenStore({})
    store.set_session("tok-1", admin_user)
    navigator = RecordingNavigator("/dashboard/locked-accounts")

    assert RoleGuard(["admin"], navigator).check(store)
    assert navigator.history == []


def test_role_guard_without_session_goes_to_login():
    navigator = RecordingNavigator("/dashboard/users")
    assert RoleGuard(["admin"], navigator).check(TokenStore({})) is False
    assert navigator.history == ["/login"]


def test_role_guard_renders_nothing_while_loading(admin_user):
    store = TokenStore({})
    store.set_session("tok-1", admin_user)
    navigator = RecordingNavigator()
    assert RoleGuard(["admin"], navigator).check(store, loading=True) is False
    assert navigator.history == []


def test_with_role_protection_wraps_page(admin_user, manager_user):
    rendered = []

    def protect(navigator):
        @with_role_protection(["admin"], navigator)
        async def locked_accounts(store, title):
            rendered.append(title)
            return f"<h1>{title}</h1>"

        return locked_accounts

    admin_store, manager_store = TokenStore({}), TokenStore({})
    admin_store.set_session("tok-1", admin_user)
    manager_store.set_session("tok-2", manager_user)

    manager_nav = RecordingNavigator()
    assert asyncio.run(protect(manager_nav)(manager_store, "Locked")) is None
    assert manager_nav.history == ["/unauthorized"]

    admin_nav = RecordingNavigator()
    assert asyncio.run(protect(admin_nav)(admin_store, "Locked")) == "<h1>Locked</h1>"
    assert rendered == ["Locked"]
    assert admin_nav.history == []
