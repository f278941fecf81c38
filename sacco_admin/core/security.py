from __future__ import annotations

import re

from .errors import PasswordPolicyError

MINIMUM_LENGTH = 8
MAXIMUM_LENGTH = 128
SPECIAL_CHARACTERS = "!@#$%^&*"

_SPECIAL_RE = re.compile(f"[{re.escape(SPECIAL_CHARACTERS)}]")


def password_policy_errors(password: str) -> list[str]:
    errors: list[str] = []
    if len(password) < MINIMUM_LENGTH:
        errors.append(f"Password must be at least {MINIMUM_LENGTH} characters long")
    if len(password) > MAXIMUM_LENGTH:
        errors.append(f"Password must be less than {MAXIMUM_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL_RE.search(password):
        errors.append(f"Password must contain at least one special character ({SPECIAL_CHARACTERS})")
    return errors


def validate_new_password(new_password: str, confirmation: str | None = None) -> None:
    """Raise ``PasswordPolicyError`` listing every rule the new password breaks."""

    if confirmation is not None and new_password != confirmation:
        raise PasswordPolicyError(["New passwords do not match"])
    errors = password_policy_errors(new_password)
    if errors:
        raise PasswordPolicyError(errors)
