"""Jinja2 environment for the admin pages.

Registers the date and money filters every page relies on, plus the
``has_permission`` global so templates hide navigation the user cannot use.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from .config import AppSettings, settings as default_settings
from .roles import has_permission


def _to_dt(value: Any, tz: ZoneInfo | None) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None and tz:
        dt = dt.replace(tzinfo=tz)
    if tz:
        dt = dt.astimezone(tz)
    return dt


def get_templates(settings: AppSettings | None = None) -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    settings = settings or default_settings
    local_tz = ZoneInfo(settings.TZ) if settings.TZ else None

    def fmt_dt(value: Any, fmt: str = "%Y-%m-%d %H:%M") -> str:
        dt = _to_dt(value, local_tz)
        return dt.strftime(fmt) if dt else ""

    def fmt_date(value: Any, fmt: str = "%Y-%m-%d") -> str:
        dt = _to_dt(value, local_tz)
        return dt.strftime(fmt) if dt else ""

    def fmt_currency(value: Any) -> str:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return ""
        return f"{settings.CURRENCY} {number:,.2f}"

    templates = Jinja2Templates(directory=str(settings.templates_dir))
    env = templates.env
    env.filters["fmt_dt"] = fmt_dt
    env.filters["fmt_date"] = fmt_date
    env.filters["fmt_currency"] = fmt_currency
    env.globals["has_permission"] = has_permission
    env.globals["app_name"] = settings.APP_NAME
    env.globals["poll_interval"] = settings.NOTIFICATION_POLL_INTERVAL
    return templates
