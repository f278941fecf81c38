from __future__ import annotations

import logging
from typing import Iterable

from ..core.errors import ApiError
from ..schemas.system import SystemStatus
from ..services.onboarding import OnboardingService
from .navigation import HOME_PATH, ONBOARDING_PATH, Navigator, is_under

logger = logging.getLogger(__name__)


class SystemStatusGate:
    """Route between onboarding and the application based on backend state.

    One gate corresponds to one application load: it navigates at most once.
    Protected routes are never redirected here; the auth guard owns them.
    """

    def __init__(
        self,
        service: OnboardingService,
        navigator: Navigator,
        protected_prefixes: Iterable[str],
        *,
        onboarding_path: str = ONBOARDING_PATH,
        home_path: str = HOME_PATH,
    ) -> None:
        self.service = service
        self.navigator = navigator
        self.protected_prefixes = list(protected_prefixes)
        self.onboarding_path = onboarding_path
        self.home_path = home_path
        self.status: SystemStatus | None = None
        self.error: str | None = None
        self._redirected = False

    @property
    def loading(self) -> bool:
        return self.status is None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def is_protected(self, path: str) -> bool:
        return any(is_under(path, prefix) for prefix in self.protected_prefixes)

    async def load(self) -> SystemStatus:
        self.error = None
        try:
            self.status = await self.service.get_status()
        except ApiError as exc:
            logger.error("System status check failed: %s", exc.message)
            self.error = exc.message or "System check failed"
            self.status = SystemStatus.assume_onboarding()
        return self.status

    async def retry(self) -> str | None:
        self.status = None
        await self.load()
        return self.route()

    def route(self) -> str | None:
        """Navigate if the current path does not fit the system state.

        Returns the target, or ``None`` when the gate stays put.
        """

        if self.status is None or self._redirected:
            return None

        path = self.navigator.current_path or HOME_PATH
        on_onboarding = path == self.onboarding_path

        target = None
        if self.status.needs_onboarding and not on_onboarding and not self.is_protected(path):
            target = self.onboarding_path
        elif not self.status.needs_onboarding and on_onboarding:
            target = self.home_path

        if target is not None:
            logger.info("System gate redirecting %s -> %s", path, target)
            self._redirected = True
            self.navigator.navigate(target)
        return target
