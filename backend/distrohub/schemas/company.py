from datetime import datetime
from typing import Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from distrohub.core.subscription import days_remaining, is_subscription_active, subscription_progress
from distrohub.schemas.user import UserOut

BusinessType = Literal["dairy", "food", "beverage", "retail", "other"]
Plan = Literal["trial", "basic", "professional", "enterprise"]
SubscriptionStatus = Literal["active", "inactive", "suspended", "cancelled", "expired"]


class CompanyRegister(BaseModel):
    company_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    owner_name: str = Field(min_length=2, max_length=50)
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[1-9]\d{1,14}$")
    business_type: BusinessType = "dairy"

    @field_validator("company_name", "owner_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = " ".join(v.strip().split())
        if len(v) < 2:
            raise ValueError("Must be at least 2 characters")
        return v


class CompanyOut(BaseModel):
    id: UUID
    tenant_id: str
    name: str
    slug: str
    email: EmailStr
    phone: Optional[str] = None
    business_type: str

    plan: str
    subscription_status: str
    subscription_start: datetime
    subscription_end: datetime
    max_users: int
    max_products: int
    max_orders: int
    features: Dict[str, bool]

    total_users: int
    total_products: int
    total_orders: int

    is_active: bool
    is_suspended: bool
    suspension_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CompanySummary(CompanyOut):
    days_remaining: int
    subscription_progress: int
    subscription_active: bool


class CompanyRegisterOut(BaseModel):
    success: bool = True
    company: CompanyOut
    user: UserOut
    access_token: str
    token_type: str = "bearer"


class NextTenantIdOut(BaseModel):
    tenant_id: str


class CompanyListOut(BaseModel):
    items: list[CompanySummary]
    total: int


class TenantActivate(BaseModel):
    is_active: bool
    reason: Optional[str] = Field(default=None, max_length=500)


class TenantSuspend(BaseModel):
    is_suspended: bool
    reason: Optional[str] = Field(default=None, max_length=500)


class SubscriptionUpdate(BaseModel):
    plan: Optional[Plan] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_end: Optional[datetime] = None
    max_users: Optional[int] = Field(default=None, ge=0)
    max_products: Optional[int] = Field(default=None, ge=0)
    max_orders: Optional[int] = Field(default=None, ge=0)
    features: Optional[Dict[str, bool]] = None


def company_summary(company, now: Optional[datetime] = None) -> CompanySummary:
    base = CompanyOut.model_validate(company).model_dump()
    return CompanySummary(
        **base,
        days_remaining=days_remaining(company, now),
        subscription_progress=subscription_progress(company, now),
        subscription_active=is_subscription_active(company, now),
    )
