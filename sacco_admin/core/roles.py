"""User roles and the single capability check used by every enforcement point."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable


class UserRole(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    MANAGER = "manager"
    LOAN_OFFICER = "loan_officer"
    ACCOUNTANT = "accountant"
    CASHIER = "cashier"
    IT = "it"
    CLERK = "clerk"
    LOAN_BOARD = "loan_board"
    BOARD_DIRECTOR = "board_director"
    MARKETING_OFFICER = "marketing_officer"
    HR = "hr"


_ALL_BUT_SUPER = frozenset(role for role in UserRole if role is not UserRole.SUPER_ADMIN)

# Which roles' permissions each role inherits (itself included).
ROLE_HIERARCHY: dict[UserRole, frozenset[UserRole]] = {
    UserRole.SUPER_ADMIN: frozenset(UserRole),
    UserRole.ADMIN: _ALL_BUT_SUPER,
    UserRole.MANAGER: frozenset(
        {
            UserRole.MANAGER,
            UserRole.LOAN_OFFICER,
            UserRole.ACCOUNTANT,
            UserRole.CASHIER,
            UserRole.CLERK,
            UserRole.HR,
        }
    ),
}


def coerce_role(value: Any) -> UserRole | None:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(str(value))
    except ValueError:
        return None


def granted_roles(role: Any) -> frozenset[UserRole]:
    resolved = coerce_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_HIERARCHY.get(resolved, frozenset({resolved}))


def has_permission(user: Any, required_roles: Iterable[Any]) -> bool:
    """Return True when ``user`` holds (directly or by hierarchy) any required role.

    ``user`` may be a ``User`` model, a mapping with a ``role`` key, or ``None``.
    """

    if user is None:
        return False
    role = user.get("role") if isinstance(user, dict) else getattr(user, "role", None)
    granted = granted_roles(role)
    return any(coerce_role(required) in granted for required in required_roles)
