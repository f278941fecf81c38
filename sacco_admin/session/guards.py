from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from ..core.roles import has_permission
from .navigation import LOGIN_PATH, UNAUTHORIZED_PATH, Navigator, is_under, login_url
from .token_store import TokenStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthGuard:
    """Keep anonymous visitors out of the protected path prefixes."""

    def __init__(self, store: TokenStore, navigator: Navigator, prefixes: Iterable[str]) -> None:
        self.store = store
        self.navigator = navigator
        self.prefixes = list(prefixes)
        self._redirected = False

    def is_protected(self, path: str) -> bool:
        return any(is_under(path, prefix) for prefix in self.prefixes)

    def check(self, path: str | None = None, *, loading: bool = False) -> bool:
        """Return True when the page at ``path`` may render."""

        if loading:
            return False
        path = path if path is not None else self.navigator.current_path
        if not self.is_protected(path):
            return True

        if self.store.get_token() is None:
            reason = "session-expired"
        elif self.store.get_current_user() is None:
            reason = "unauthorized"
        else:
            return True

        self.store.clear_session()
        if not self._redirected:
            self._redirected = True
            logger.info("Blocked anonymous access to %s (%s)", path, reason)
            self.navigator.navigate(login_url(reason))
        return False


class RoleGuard:
    """Restrict a page to users holding one of ``required_roles``."""

    def __init__(self, required_roles: Iterable[Any], navigator: Navigator) -> None:
        self.required_roles = list(required_roles)
        self.navigator = navigator
        self._redirected = False

    def check(self, store: TokenStore, *, loading: bool = False) -> bool:
        if loading:
            return False
        if not store.has_session():
            self._go(LOGIN_PATH)
            return False
        if not has_permission(store.get_current_user(), self.required_roles):
            self._go(UNAUTHORIZED_PATH)
            return False
        return True

    def _go(self, url: str) -> None:
        if self._redirected:
            return
        self._redirected = True
        self.navigator.navigate(url)

    def wrap(self, page: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T | None]]:
        """Wrap ``page(store, ...)`` so it only runs once access is granted."""

        @functools.wraps(page)
        async def protected(store: TokenStore, *args: Any, **kwargs: Any) -> T | None:
            if not self.check(store):
                return None
            return await page(store, *args, **kwargs)

        return protected


def with_role_protection(
    required_roles: Iterable[Any], navigator: Navigator
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T | None]]]:
    """Decorator form of ``RoleGuard.wrap``."""

    guard = RoleGuard(required_roles, navigator)
    return guard.wrap
