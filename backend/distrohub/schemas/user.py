from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(min_length=2, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    role: Literal["company_admin", "manager", "staff"] = "staff"

    @field_validator("full_name")
    @classmethod
    def normalize_full_name(cls, v: str) -> str:
        return " ".join(v.strip().split())


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    tenant_id: Optional[str] = None
    is_company_owner: bool
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
