# backend/distrohub/schemas/auth.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class MagicCodeRequest(BaseModel):
    email: EmailStr


class MagicCodeVerify(BaseModel):
    email: EmailStr
    code: str = Field(min_length=4, max_length=64)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeResponse(BaseModel):
    id: str
    email: EmailStr
    is_active: bool
    role: str
    tenant_id: Optional[str] = None
    is_company_owner: bool = False
    full_name: Optional[str] = None
