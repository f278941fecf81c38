import pytest

from sacco_admin.core.errors import PasswordPolicyError
from sacco_admin.core.roles import UserRole, granted_roles, has_permission
from sacco_admin.core.security import password_policy_errors, validate_new_password


def test_manager_inherits_operational_roles():
    assert has_permission({"role": "manager"}, [UserRole.CASHIER])
    assert has_permission({"role": "manager"}, ["loan_officer"])
    assert not has_permission({"role": "manager"}, ["admin"])


def test_admin_covers_everything_but_super_admin():
    assert has_permission({"role": "admin"}, ["hr", "it"])
    assert not has_permission({"role": "admin"}, ["super_admin"])
    assert UserRole.SUPER_ADMIN in granted_roles("super_admin")


def test_unknown_or_missing_user_has_no_permissions():
    assert not has_permission(None, ["clerk"])
    assert not has_permission({"role": "janitor"}, ["clerk"])
    assert not has_permission({}, ["clerk"])


def test_roles_without_hierarchy_only_grant_themselves():
    assert granted_roles("cashier") == frozenset({UserRole.CASHIER})


@pytest.mark.parametrize(
    "password,fragment",
    [
        ("Sh0rt!", "8"),
        ("alllowercase1!", "uppercase"),
        ("ALLUPPERCASE1!", "lowercase"),
        ("NoDigitsHere!", "number"),
        ("NoSpecial123", "special"),
    ],
)
def test_password_policy_reports_each_missing_rule(password, fragment):
    errors = password_policy_errors(password)
    assert any(fragment in error for error in errors)


def test_strong_password_passes():
    assert password_policy_errors("Str0ng!Pass") == []
    validate_new_password("Str0ng!Pass", "Str0ng!Pass")


def test_mismatched_confirmation_is_rejected():
    with pytest.raises(PasswordPolicyError) as excinfo:
        validate_new_password("Str0ng!Pass", "Str0ng!Pas")
    assert "New passwords do not match" in excinfo.value.errors
