from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..core.errors import ApiError
from ..schemas.system import OnboardingRequest, OnboardingResult, SystemStatus
from .api_client import SaccoApiClient, unwrap

logger = logging.getLogger(__name__)


class OnboardingService:
    def __init__(self, client: SaccoApiClient) -> None:
        self._client = client

    async def get_status(self) -> SystemStatus:
        data = await self._client.get("system/onboarding/status")
        try:
            return SystemStatus.model_validate(unwrap(data) or {})
        except ValidationError as exc:
            logger.error("Unreadable system status response (%d validation errors)", exc.error_count())
            raise ApiError("The server returned an unreadable system status", details=data) from exc

    async def start(self, request: OnboardingRequest) -> OnboardingResult:
        """Create the company, main branch and admin user in one call.

        Validation failures come back as an ``OnboardingResult`` carrying the
        backend's field errors instead of an exception.
        """

        try:
            data = await self._client.post(
                "system/onboarding/start",
                json=request.model_dump(by_alias=True, exclude_none=True),
            )
        except ApiError as exc:
            if isinstance(exc.details, dict) and exc.status_code and exc.status_code < 500:
                logger.info("Onboarding rejected: %s", exc.message)
                return OnboardingResult.model_validate({"success": False, **exc.details, "message": exc.message})
            raise
        return OnboardingResult.model_validate(data or {})

    async def validate_step(self, step: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            result = await self._client.post("system/onboarding/validate", json={"step": step, "data": data})
        except ApiError as exc:
            if isinstance(exc.details, dict):
                return exc.details
            return {"success": False, "valid": False, "message": "Validation failed", "step": step}
        return result or {}

    async def check_company_code(self, company_code: str) -> bool:
        result = await self._client.post(
            "system/onboarding/check-company-code", json={"companyCode": company_code}
        )
        return bool((result or {}).get("available"))

    async def check_branch_code(self, branch_code: str) -> bool:
        result = await self._client.post(
            "system/onboarding/check-branch-code", json={"branchCode": branch_code}
        )
        return bool((result or {}).get("available"))
