from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from ..deps.session import WebSession, get_web_session, render
from ..schemas.system import OnboardingRequest, SystemStatus
from ..services.onboarding import OnboardingService
from ..session.navigation import login_url

logger = logging.getLogger(__name__)

router = APIRouter()

# form field prefix -> OnboardingRequest section
SECTIONS = {
    "company": "companyInfo",
    "branch": "mainBranchInfo",
    "admin": "adminUserInfo",
}


def _nest_form(form: dict[str, str]) -> dict[str, dict[str, object]]:
    """Turn ``company.companyName``-style form keys into the request body."""

    body: dict[str, dict[str, object]] = {section: {} for section in SECTIONS.values()}
    for key, value in form.items():
        prefix, _, field = key.partition(".")
        if prefix in SECTIONS and field and value != "":
            body[SECTIONS[prefix]][field] = value
    services = body["mainBranchInfo"].get("servicesOffered")
    if isinstance(services, str):
        body["mainBranchInfo"]["servicesOffered"] = [item.strip() for item in services.split(",") if item.strip()]
    return body


async def _status(request: Request, service: OnboardingService) -> SystemStatus:
    status = getattr(request.state, "system_status", None)
    if isinstance(status, SystemStatus):
        return status
    return await service.get_status()


@router.get("/onboarding", response_class=HTMLResponse)
async def onboarding_page(request: Request, web: WebSession = Depends(get_web_session)):
    status = await _status(request, OnboardingService(web.client))
    return render(request, "onboarding.html", {"status": status, "form": {}})


@router.post("/onboarding", response_class=HTMLResponse)
async def onboarding_submit(request: Request, web: WebSession = Depends(get_web_session)):
    service = OnboardingService(web.client)
    form = {key: str(value) for key, value in (await request.form()).items()}
    body = _nest_form(form)
    body["setupOptions"] = {"forcePasswordChange": form.get("forcePasswordChange") == "on"}

    try:
        onboarding = OnboardingRequest.model_validate(body)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        status = await service.get_status()
        return render(
            request,
            "onboarding.html",
            {"status": status, "form": form, "errors": errors},
            status_code=400,
        )

    result = await service.start(onboarding)
    if result.success:
        logger.info("Onboarding completed for %s", onboarding.company_info.company_code)
        return RedirectResponse(url=login_url("onboarding-complete"), status_code=302)

    status = await service.get_status()
    return render(
        request,
        "onboarding.html",
        {"status": status, "form": form, "errors": result.errors, "error": result.message},
        status_code=400,
    )
