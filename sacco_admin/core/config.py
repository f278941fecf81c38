"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable the admin
front end relies on. That means anyone inspecting the project can quickly
answer the questions:

*What:* Which settings exist and what do they control?
*When:* They are read once at startup when the module is imported.
*Why:* Centralising configuration prevents magic strings scattered all over the
codebase.
*How:* ``pydantic-settings`` reads the process environment (and ``.env``). The
backend base URL has no default: starting without it fails immediately.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROTECTED_PREFIXES = ["/dashboard", "/members", "/accounting", "/budget"]


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    TEMPLATES_DIR: Path | None = None
    STATIC_DIR: Path | None = None
    TZ: str = "Africa/Nairobi"
    CURRENCY: str = "KES"

    APP_NAME: str = "SACCO Admin"
    LOG_LEVEL: str = "INFO"

    # ---- Backend REST API
    API_URL: str = Field(validation_alias=AliasChoices("SACCO_API_URL", "API_URL"))
    API_TIMEOUT: float = 30.0

    # ---- Browser session (signed cookie)
    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "sacco_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24
    SESSION_HTTPS_ONLY: bool = False
    SESSION_IDLE_TIMEOUT_MIN: int = 20

    # ---- Session gating
    REDIRECT_DELAY: float = 0.0
    REDIRECT_COOLDOWN: float = 3.0
    PENDING_STATE_TTL: int = 600
    # Comma separated so it can be set from a plain environment variable.
    PROTECTED_PREFIXES: str = ",".join(DEFAULT_PROTECTED_PREFIXES)
    SYSTEM_CHECK_ENABLED: bool = True
    NOTIFICATION_POLL_INTERVAL: int = 30

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR if self.TEMPLATES_DIR is not None else self.BASE_DIR / "templates"

    @property
    def static_dir(self) -> Path:
        return self.STATIC_DIR if self.STATIC_DIR is not None else self.BASE_DIR / "static"

    @property
    def protected_prefixes(self) -> list[str]:
        return parse_prefixes(self.PROTECTED_PREFIXES)

    @field_validator("API_URL")
    @classmethod
    def require_api_url(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("SACCO_API_URL environment variable is required")
        return value.rstrip("/") + "/"


def parse_prefixes(value: Any) -> list[str]:
    """Normalise a comma separated string (or iterable) into ``/prefix`` entries."""

    if value in (None, "", []):
        return list(DEFAULT_PROTECTED_PREFIXES)
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",") if item.strip()]
    elif isinstance(value, Iterable):
        items = [str(item).strip() for item in value if str(item).strip()]
    else:
        raise TypeError("PROTECTED_PREFIXES must be a comma separated string or list")
    return ["/" + item.strip("/") for item in items]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()  # type: ignore[call-arg]


# Instantiating here means importing ``settings`` anywhere instantly gives you
# access to the configured values without rebuilding the object each time.
settings = get_settings()
