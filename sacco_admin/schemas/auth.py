from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ..core.roles import UserRole

CAMEL = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}

REQUIRES_2FA = "requires_2fa"


class UserBranch(BaseModel):
    id: Union[str, int]
    name: str
    display_name: Optional[str] = None
    branch_code: Optional[str] = None
    region: Optional[str] = None
    branch_type: Optional[str] = None
    status: Optional[str] = None
    is_active: Optional[bool] = None
    is_head_office: Optional[bool] = None

    model_config = CAMEL


class User(BaseModel):
    id: Union[str, int]
    first_name: str = ""
    last_name: str = ""
    email: str
    role: UserRole
    department: str = ""
    status: str = "active"
    password_change_required: bool = False
    last_password_changed_at: Optional[str] = None
    password_expires_at: Optional[str] = None
    profile_picture: Optional[str] = None
    branch_id: Optional[Union[str, int]] = None
    branch: Optional[UserBranch] = None

    model_config = CAMEL

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class LoginResponse(BaseModel):
    status: str = "success"
    message: str = ""
    token: Optional[str] = None
    user: Optional[User] = None
    user_id: Optional[Union[str, int]] = None
    two_factor_method: Optional[str] = None
    expires_in: Optional[int] = None

    model_config = CAMEL

    @property
    def requires_two_factor(self) -> bool:
        return self.status == REQUIRES_2FA


class PendingTwoFactor(BaseModel):
    user_id: Union[str, int]
    two_factor_method: str = "email"
    email: Optional[str] = None
    created_at: float
    expires_in: Optional[int] = None

    model_config = CAMEL


class PendingUserData(BaseModel):
    """A freshly authenticated user that must change their password first."""

    token: str
    user: User
    created_at: float

    model_config = CAMEL


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)

    model_config = CAMEL
