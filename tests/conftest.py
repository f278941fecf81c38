import os
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SACCO_API_URL", "http://backend.test/api")

from sacco_admin.services.api_client import build_http_client  # noqa: E402

BASE_URL = "http://backend.test/api/"

ADMIN = {
    "id": 7,
    "firstName": "Amina",
    "lastName": "Otieno",
    "email": "amina@sacco.test",
    "role": "admin",
    "department": "Operations",
}
MANAGER = {**ADMIN, "id": 8, "firstName": "Brian", "email": "brian@sacco.test", "role": "manager"}


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """In-memory stand-in for the SACCO REST API behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        if handler is None:
            def handler(request: httpx.Request, status=status, body=json) -> httpx.Response:
                if body is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=body)
        self.routes[(method.upper(), path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/api/"):
            path = path[len("/api/"):]
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})
        return handler(request)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method.upper() and request.url.path == f"/api/{path}"
        ]

    def http_client(self) -> httpx.AsyncClient:
        return build_http_client(BASE_URL, transport=httpx.MockTransport(self))


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def admin_user() -> dict[str, Any]:
    return dict(ADMIN)


@pytest.fixture()
def manager_user() -> dict[str, Any]:
    return dict(MANAGER)
