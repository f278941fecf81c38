from __future__ import annotations

import time
from typing import Callable, Protocol
from urllib.parse import urlencode

LOGIN_PATH = "/login"
ONBOARDING_PATH = "/onboarding"
HOME_PATH = "/"
UNAUTHORIZED_PATH = "/unauthorized"


class Navigator(Protocol):
    """The one way session components send the browser somewhere else."""

    @property
    def current_path(self) -> str: ...

    def navigate(self, url: str) -> None: ...


class RecordingNavigator:
    """Remembers navigations instead of performing them.

    The web shell turns ``target`` into a redirect response once the request
    handler is done; tests inspect ``history``.
    """

    def __init__(self, current_path: str = HOME_PATH) -> None:
        self._current_path = current_path
        self.history: list[str] = []

    @property
    def current_path(self) -> str:
        return self._current_path

    @property
    def target(self) -> str | None:
        return self.history[0] if self.history else None

    def navigate(self, url: str) -> None:
        self.history.append(url)


def login_url(message: str | None = None, *, clock: Callable[[], float] = time.time) -> str:
    """Login URL with a reason and a cache-busting timestamp."""

    params: dict[str, str] = {}
    if message:
        params["message"] = message
    params["t"] = str(int(clock() * 1000))
    return f"{LOGIN_PATH}?{urlencode(params)}"


def is_under(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/") or "/"
    return path == prefix or path.startswith(prefix + "/")
