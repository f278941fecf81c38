from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator

import httpx

from ..core.errors import ApiError, BackendUnavailable, Unauthorized, decode_body
from ..session.navigation import LOGIN_PATH, Navigator, is_under, login_url
from ..session.token_store import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class RedirectGuard:
    """One-shot latch that re-opens ``cooldown`` seconds after it was taken."""

    def __init__(self, cooldown: float = 3.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.cooldown = cooldown
        self._clock = clock
        self._closed_until: float | None = None

    @property
    def active(self) -> bool:
        return self._closed_until is not None and self._clock() < self._closed_until

    def acquire(self) -> bool:
        if self.active:
            return False
        self._closed_until = self._clock() + self.cooldown
        return True

    def reset(self) -> None:
        self._closed_until = None


class SessionFlags:
    """Mutable state shared by everything that reacts to an expired session."""

    def __init__(self, redirect_cooldown: float = 3.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.redirect_guard = RedirectGuard(redirect_cooldown, clock)
        self.logging_out = False


def build_http_client(base_url: str, timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers={"Accept": "application/json"},
        **kwargs,
    )


def unwrap(payload: Any, key: str = "data") -> Any:
    """Return ``payload[key]`` for enveloped responses, the payload otherwise."""

    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload


def _failure(response: httpx.Response, context: str) -> ApiError:
    if response.status_code >= 500:
        logger.error("Backend error %s during %s", response.status_code, context)
    elif response.status_code >= 400:
        logger.warning("Backend rejected %s with %s", context, response.status_code)
    return ApiError.from_response(response)


class SaccoApiClient:
    """Single dispatch point for backend calls.

    Attaches the bearer token from the ``TokenStore`` at send time and owns the
    reaction to an expired session: clear credentials, tell listeners, and send
    the browser to the login page once per episode.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: TokenStore,
        navigator: Navigator | None = None,
        *,
        flags: SessionFlags | None = None,
        redirect_delay: float = 0.0,
    ) -> None:
        self._http = http
        self.store = store
        self.navigator = navigator
        self.flags = flags or SessionFlags()
        self.redirect_delay = redirect_delay
        self._expired_listeners: list[Callable[[], None]] = []

    def on_token_expired(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""

        self._expired_listeners.append(listener)

        def _remove() -> None:
            if listener in self._expired_listeners:
                self._expired_listeners.remove(listener)

        return _remove

    @contextmanager
    def logging_out(self) -> Iterator[None]:
        self.flags.logging_out = True
        try:
            yield
        finally:
            self.flags.logging_out = False

    async def request(
        self,
        method: str,
        url: str,
        *,
        skip_auth: bool = False,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        if not skip_auth and "Authorization" not in request_headers:
            token = self.store.get_token()
            if token:
                request_headers["Authorization"] = f"Bearer {token}"

        context = f"{method.upper()} {url}"
        try:
            response = await self._http.request(method, url, headers=request_headers, **kwargs)
        except httpx.TransportError as exc:
            logger.error("Backend unreachable during %s: %s", context, exc)
            raise BackendUnavailable(f"Unable to reach the backend: {exc}") from exc

        if response.is_success:
            return response
        if response.status_code == 401:
            if not skip_auth:
                self._handle_unauthorized(context)
            raise Unauthorized.from_response(response)
        raise _failure(response, context)

    def _handle_unauthorized(self, context: str) -> None:
        if self.flags.logging_out:
            logger.info("401 during %s while logging out; leaving cleanup to logout", context)
            return

        logger.warning("Session rejected by backend during %s; clearing credentials", context)
        self.store.clear_session()
        self.store.clear_transient()
        for listener in list(self._expired_listeners):
            listener()

        if self.navigator is None or not self.flags.redirect_guard.acquire():
            return
        if is_under(self.navigator.current_path, LOGIN_PATH):
            return
        url = login_url("session-expired")
        if self.redirect_delay > 0:
            asyncio.get_running_loop().call_later(self.redirect_delay, self.navigator.navigate, url)
        else:
            self.navigator.navigate(url)

    async def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self.request(method, url, **kwargs)
        if response.status_code == 204 or not response.content:
            return None
        return decode_body(response)

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self._json("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        return await self._json("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> Any:
        return await self._json("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Any:
        return await self._json("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        return await self._json("DELETE", url, **kwargs)
