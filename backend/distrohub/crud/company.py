# backend/distrohub/crud/company.py
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from distrohub.core.config import settings
from distrohub.core.dates import utcnow
from distrohub.core.errors import BusinessRuleError, ConflictError, ResourceNotFound
from distrohub.core.roles import UserRole
from distrohub.core.subscription import (
    PLANS,
    RESOURCE_FIELDS,
    SUBSCRIPTION_STATUSES,
    normalize_plan,
    plan_defaults,
)
from distrohub.core.tenant_ids import NUMERIC_TENANT_ID_RE, TenantIdAllocator, TENANT_ID_WIDTH
from distrohub.core.tenancy import normalize_tenant_id
from distrohub.models.company import Company
from distrohub.models.user import User

logger = logging.getLogger(__name__)

DELETED_REASON = "Deleted by SaaS Admin"


# -----------------------------
# Tenant id allocation
# -----------------------------
async def max_numeric_tenant_id(db: AsyncSession) -> Optional[str]:
    """
    Highest tenant_id made of exactly three digits. Fallback "T..." tokens and
    anything else are ignored. Portable: no regex support needed from the DB.
    """
    stmt = select(Company.tenant_id).where(func.length(Company.tenant_id) == TENANT_ID_WIDTH)
    res = await db.execute(stmt)
    numeric = [t for t in res.scalars().all() if NUMERIC_TENANT_ID_RE.match(t or "")]
    if not numeric:
        return None
    return max(numeric)


async def tenant_id_exists(db: AsyncSession, tenant_id: str) -> bool:
    res = await db.execute(select(Company.id).where(Company.tenant_id == tenant_id).limit(1))
    return res.scalar_one_or_none() is not None


def sql_tenant_id_allocator(db: AsyncSession) -> TenantIdAllocator:
    async def _max() -> Optional[str]:
        return await max_numeric_tenant_id(db)

    async def _exists(tenant_id: str) -> bool:
        return await tenant_id_exists(db, tenant_id)

    return TenantIdAllocator(_max, _exists, max_probes=settings.TENANT_ID_MAX_PROBES)


# -----------------------------
# Lookups
# -----------------------------
async def find_by_tenant_id(db: AsyncSession, tenant_id: str) -> Optional[Company]:
    """Active, unsuspended company by upper-cased tenant id (what resolution loads)."""
    tid = normalize_tenant_id(tenant_id)
    if not tid:
        return None
    stmt = select(Company).where(
        Company.tenant_id == tid,
        Company.is_active.is_(True),
        Company.is_suspended.is_(False),
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


def company_loader(db: AsyncSession):
    async def _load(tenant_id: str) -> Optional[Company]:
        return await find_by_tenant_id(db, tenant_id)

    return _load


async def get_company_any_state(db: AsyncSession, tenant_id: str) -> Company:
    """SaaS admin lookup: ignores active/suspended flags."""
    tid = normalize_tenant_id(tenant_id)
    res = await db.execute(select(Company).where(Company.tenant_id == tid))
    company = res.scalar_one_or_none()
    if company is None:
        raise ResourceNotFound("Company not found")
    return company


# -----------------------------
# Slugs
# -----------------------------
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACE_RE = re.compile(r"\s+")
_SLUG_DASH_RE = re.compile(r"-+")


def slugify(name: str) -> str:
    s = (name or "").lower()
    s = _SLUG_STRIP_RE.sub("", s)
    s = _SLUG_SPACE_RE.sub("-", s.strip())
    s = _SLUG_DASH_RE.sub("-", s).strip("-")
    return s or "company"


async def unique_slug(db: AsyncSession, name: str) -> str:
    base = slugify(name)
    res = await db.execute(
        select(Company.slug).where((Company.slug == base) | Company.slug.like(f"{base}-%"))
    )
    taken = set(res.scalars().all())
    slug = base
    counter = 1
    while slug in taken:
        slug = f"{base}-{counter}"
        counter += 1
    return slug


# -----------------------------
# Registration
# -----------------------------
async def register_company(
    db: AsyncSession,
    *,
    company_name: str,
    email: str,
    owner_name: str,
    phone: Optional[str] = None,
    business_type: str = "dairy",
) -> tuple[Company, User]:
    """
    Create a tenant on a trial plan plus its owner (company_admin).

    The tenant id probe and the insert are not atomic; a lost race shows up as
    an IntegrityError on the unique index and is reported as ConflictError.
    """
    email = User.normalize_email(email)

    existing = await db.execute(select(Company.id).where(Company.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("A company with this email already exists", field="email")

    existing_user = await db.execute(select(User.id).where(User.email == email))
    if existing_user.scalar_one_or_none() is not None:
        raise ConflictError("A user with this email already exists", field="email")

    tenant_id = await sql_tenant_id_allocator(db).allocate()
    slug = await unique_slug(db, company_name)

    now = utcnow()
    defaults = plan_defaults("trial")
    company = Company(
        tenant_id=tenant_id,
        name=company_name.strip(),
        slug=slug,
        email=email,
        phone=phone,
        business_type=business_type,
        plan="trial",
        subscription_status="active",
        subscription_start=now,
        subscription_end=now + timedelta(days=settings.TRIAL_DAYS),
        max_users=defaults.max_users,
        max_products=defaults.max_products,
        max_orders=defaults.max_orders,
        features=dict(defaults.features),
        total_users=1,
        last_activity=now,
        is_active=True,
        is_suspended=False,
    )
    owner = User(
        email=email,
        full_name=User.normalize_full_name(owner_name),
        phone=phone,
        role=UserRole.COMPANY_ADMIN.value,
        tenant_id=tenant_id,
        is_company_owner=True,
        is_active=True,
    )
    db.add(company)
    db.add(owner)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Company registration conflict for tenant_id={tenant_id} slug={slug}")
        raise ConflictError("Company could not be registered, please retry", field="tenant_id")

    await db.refresh(company)
    await db.refresh(owner)
    logger.info(f"Registered company tenant_id={tenant_id} plan=trial")
    return company, owner


# -----------------------------
# Usage stats
# -----------------------------
async def increment_stat(db: AsyncSession, tenant_id: str, resource: str, by: int = 1) -> None:
    """
    Bump a usage counter (users/products/orders) with a SQL-side increment.
    Does not commit; runs inside the caller's unit of work.
    """
    fields = RESOURCE_FIELDS.get(resource)
    if fields is None:
        raise ValueError(f"Unknown resource {resource!r}")
    usage_attr = fields[1]
    column = getattr(Company, usage_attr)
    stmt = (
        update(Company)
        .where(Company.tenant_id == tenant_id)
        .values({usage_attr: column + by, "last_activity": utcnow()})
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)


# -----------------------------
# SaaS admin
# -----------------------------
async def list_companies(
    db: AsyncSession,
    *,
    status: Optional[str] = None,
    plan: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Company], int]:
    criteria: list[Any] = []
    if status == "active":
        criteria += [Company.is_active.is_(True), Company.is_suspended.is_(False)]
    elif status == "suspended":
        criteria.append(Company.is_suspended.is_(True))
    elif status == "inactive":
        criteria.append(Company.is_active.is_(False))
    if plan:
        criteria.append(Company.plan == normalize_plan(plan))
    if search:
        like = f"%{search.strip()}%"
        criteria.append(
            Company.name.ilike(like) | Company.tenant_id.ilike(like) | Company.email.ilike(like)
        )

    total = (await db.execute(select(func.count(Company.id)).where(*criteria))).scalar() or 0
    stmt = select(Company).where(*criteria).order_by(Company.created_at.desc()).limit(limit).offset(offset)
    res = await db.execute(stmt)
    return list(res.scalars().all()), int(total)


async def _set_users_active(db: AsyncSession, tenant_id: str, is_active: bool) -> None:
    await db.execute(
        update(User)
        .where(User.tenant_id == tenant_id)
        .values(is_active=is_active)
        .execution_options(synchronize_session=False)
    )


async def set_active(db: AsyncSession, company: Company, is_active: bool, reason: Optional[str] = None) -> Company:
    """Deactivating also suspends; activating clears the suspension. Users follow."""
    company.is_active = is_active
    if is_active:
        company.is_suspended = False
        company.suspension_reason = None
        company.suspended_at = None
    else:
        company.is_suspended = True
        company.suspension_reason = reason or "Deactivated by SaaS Admin"
        company.suspended_at = utcnow()

    await _set_users_active(db, company.tenant_id, is_active)
    await db.commit()
    await db.refresh(company)
    logger.info(f"Company tenant_id={company.tenant_id} is_active={is_active}")
    return company


async def set_suspended(
    db: AsyncSession, company: Company, is_suspended: bool, reason: Optional[str] = None
) -> Company:
    if is_suspended and not (reason or "").strip():
        raise BusinessRuleError("Suspension reason is required")

    company.is_suspended = is_suspended
    company.suspension_reason = reason.strip() if is_suspended else None
    company.suspended_at = utcnow() if is_suspended else None

    await db.commit()
    await db.refresh(company)
    logger.info(f"Company tenant_id={company.tenant_id} is_suspended={is_suspended}")
    return company


async def update_subscription(db: AsyncSession, company: Company, changes: dict[str, Any]) -> Company:
    """
    Admin plan change. A new plan resets limits and features to that plan's
    defaults; explicit limit/feature values in `changes` win over the defaults.
    """
    plan = changes.get("plan")
    if plan is not None:
        plan = normalize_plan(plan)
        if plan not in PLANS:
            raise BusinessRuleError(f"Unknown plan {plan!r}")
        defaults = plan_defaults(plan)
        company.plan = plan
        company.max_users = defaults.max_users
        company.max_products = defaults.max_products
        company.max_orders = defaults.max_orders
        company.features = dict(defaults.features)

    status = changes.get("subscription_status")
    if status is not None:
        status = status.strip().lower()
        if status not in SUBSCRIPTION_STATUSES:
            raise BusinessRuleError(f"Unknown subscription status {status!r}")
        company.subscription_status = status

    end: Optional[datetime] = changes.get("subscription_end")
    if end is not None:
        company.subscription_end = end

    for attr in ("max_users", "max_products", "max_orders"):
        if changes.get(attr) is not None:
            setattr(company, attr, int(changes[attr]))

    if changes.get("features"):
        company.features = {**(company.features or {}), **changes["features"]}

    await db.commit()
    await db.refresh(company)
    logger.info(f"Company tenant_id={company.tenant_id} subscription updated plan={company.plan}")
    return company


async def soft_delete(db: AsyncSession, company: Company) -> Company:
    company.is_active = False
    company.is_suspended = True
    company.suspension_reason = DELETED_REASON
    company.suspended_at = utcnow()
    await _set_users_active(db, company.tenant_id, False)
    await db.commit()
    await db.refresh(company)
    logger.info(f"Company tenant_id={company.tenant_id} soft-deleted")
    return company
