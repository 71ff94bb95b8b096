# backend/distrohub/api/v1/saas_admin.py
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from distrohub.api.deps.tenant import require_super_admin
from distrohub.crud import company as company_crud
from distrohub.db.session import get_db
from distrohub.models.user import User
from distrohub.schemas.company import (
    CompanyListOut,
    CompanySummary,
    SubscriptionUpdate,
    TenantActivate,
    TenantSuspend,
    company_summary,
)

router = APIRouter(prefix="/saas-admin/tenants", tags=["saas-admin"])


@router.get("", response_model=CompanyListOut)
async def list_tenants(
    status: Optional[Literal["active", "inactive", "suspended"]] = Query(default=None),
    plan: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_super_admin),
) -> CompanyListOut:
    companies, total = await company_crud.list_companies(
        db, status=status, plan=plan, search=search, limit=limit, offset=offset
    )
    return CompanyListOut(items=[company_summary(c) for c in companies], total=total)


@router.get("/{tenant_id}", response_model=CompanySummary)
async def get_tenant(
    tenant_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_super_admin),
) -> CompanySummary:
    company = await company_crud.get_company_any_state(db, tenant_id)
    return company_summary(company)


@router.patch("/{tenant_id}/activate", response_model=CompanySummary)
async def activate_tenant(
    tenant_id: str,
    payload: TenantActivate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_super_admin),
) -> CompanySummary:
    company = await company_crud.get_company_any_state(db, tenant_id)
    company = await company_crud.set_active(db, company, payload.is_active, payload.reason)
    return company_summary(company)


@router.patch("/{tenant_id}/suspend", response_model=CompanySummary)
async def suspend_tenant(
    tenant_id: str,
    payload: TenantSuspend,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_super_admin),
) -> CompanySummary:
    company = await company_crud.get_company_any_state(db, tenant_id)
    company = await company_crud.set_suspended(db, company, payload.is_suspended, payload.reason)
    return company_summary(company)


@router.patch("/{tenant_id}/subscription", response_model=CompanySummary)
async def update_tenant_subscription(
    tenant_id: str,
    payload: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_super_admin),
) -> CompanySummary:
    company = await company_crud.get_company_any_state(db, tenant_id)
    company = await company_crud.update_subscription(db, company, payload.model_dump(exclude_unset=True))
    return company_summary(company)


@router.delete("/{tenant_id}")
async def delete_tenant(
    tenant_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_super_admin),
):
    """Soft delete: the company record and its users are kept, deactivated."""
    company = await company_crud.get_company_any_state(db, tenant_id)
    await company_crud.soft_delete(db, company)
    return {"success": True, "message": "Company deleted successfully", "tenant_id": company.tenant_id}
