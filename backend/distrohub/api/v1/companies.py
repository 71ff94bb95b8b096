# backend/distrohub/api/v1/companies.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from distrohub.api.deps.tenant import get_tenant_context
from distrohub.api.v1.auth import issue_token
from distrohub.core.tenancy import TenantContext
from distrohub.crud.company import register_company, sql_tenant_id_allocator
from distrohub.db.session import get_db
from distrohub.schemas.company import (
    CompanyOut,
    CompanyRegister,
    CompanyRegisterOut,
    CompanySummary,
    NextTenantIdOut,
    company_summary,
)
from distrohub.schemas.user import UserOut

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post("/register", response_model=CompanyRegisterOut, status_code=status.HTTP_201_CREATED)
async def register(payload: CompanyRegister, db: AsyncSession = Depends(get_db)) -> CompanyRegisterOut:
    """
    Public sign-up: new tenant on a trial plan, owner account, and a token for
    that owner.
    """
    company, owner = await register_company(
        db,
        company_name=payload.company_name,
        email=payload.email,
        owner_name=payload.owner_name,
        phone=payload.phone,
        business_type=payload.business_type,
    )
    return CompanyRegisterOut(
        company=CompanyOut.model_validate(company),
        user=UserOut.model_validate(owner),
        access_token=issue_token(owner),
    )


@router.get("/next-tenant-id", response_model=NextTenantIdOut)
async def next_tenant_id(db: AsyncSession = Depends(get_db)) -> NextTenantIdOut:
    """Preview only; the id is not reserved."""
    return NextTenantIdOut(tenant_id=await sql_tenant_id_allocator(db).allocate())


@router.get("/current", response_model=CompanySummary)
async def current_company(ctx: TenantContext = Depends(get_tenant_context)) -> CompanySummary:
    return company_summary(ctx.company)
