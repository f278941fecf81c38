from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from .auth import CAMEL


class SystemStatus(BaseModel):
    is_initialized: bool = False
    has_company: bool = False
    has_admin_user: bool = False
    has_main_branch: bool = False
    needs_onboarding: bool = True
    initialization_date: Optional[str] = None

    model_config = CAMEL

    @classmethod
    def assume_onboarding(cls) -> "SystemStatus":
        """The state used when the backend cannot tell us anything."""

        return cls(
            is_initialized=False,
            has_company=False,
            has_admin_user=False,
            has_main_branch=False,
            needs_onboarding=True,
        )


class CompanyInfo(BaseModel):
    company_name: str = Field(..., min_length=1)
    company_code: str = Field(..., min_length=1)
    registration_number: Optional[str] = None
    tax_identification_number: Optional[str] = None
    license_number: Optional[str] = None
    established_date: Optional[str] = None
    head_office_address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    primary_phone: Optional[str] = None
    primary_email: Optional[str] = None
    website: Optional[str] = None

    model_config = CAMEL


class BranchInfo(BaseModel):
    name: str = Field(..., min_length=1)
    branch_code: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None
    ward: Optional[str] = None
    street: Optional[str] = None
    primary_phone: Optional[str] = None
    email: Optional[str] = None
    services_offered: list[str] = Field(default_factory=list)

    model_config = CAMEL


class AdminUserInfo(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    national_id: Optional[str] = None
    date_of_birth: Optional[str] = None

    model_config = CAMEL


class SetupOptions(BaseModel):
    create_sample_data: bool = False
    force_password_change: bool = False
    enable_notifications: bool = True
    auto_activate_features: bool = True

    model_config = CAMEL


class OnboardingRequest(BaseModel):
    company_info: CompanyInfo
    main_branch_info: BranchInfo
    admin_user_info: AdminUserInfo
    setup_options: Optional[SetupOptions] = None

    model_config = CAMEL


class OnboardingResult(BaseModel):
    success: bool = False
    message: str = ""
    data: Optional[dict[str, Any]] = None
    errors: list[dict[str, Any]] = Field(default_factory=list)

    model_config = CAMEL
