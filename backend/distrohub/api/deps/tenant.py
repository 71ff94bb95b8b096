import json
import logging
from typing import Optional

from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from distrohub.api.v1.auth import get_current_user
from distrohub.core.errors import FeatureNotAvailable, LimitExceeded, TenantAccessDenied
from distrohub.core.roles import UserRole, is_super_admin
from distrohub.core.subscription import check_limit, has_feature
from distrohub.core.tenancy import (
    TenantContext,
    ensure_tenant_access,
    extract_tenant_identifier,
    resolve_tenant,
    resolve_tenant_optional,
)
from distrohub.crud.company import company_loader
from distrohub.db.session import get_db
from distrohub.models.user import User
from distrohub.repositories.scoped import BaseRepository, repository_for

logger = logging.getLogger(__name__)

ALLOWED_ROLES = {r.value for r in UserRole}


async def _body_tenant_id(request: Request) -> Optional[str]:
    """tenantId field of a JSON object body, if there is one."""
    if request.method in {"GET", "HEAD", "DELETE", "OPTIONS"}:
        return None
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    raw = await request.body()  # cached by Starlette, the route still gets it
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        # malformed JSON is reported by request validation
        return None
    if isinstance(data, dict):
        value = data.get("tenantId")
        return value if isinstance(value, str) else None
    return None


async def get_tenant_identifier(
    request: Request,
    x_tenant_id: Optional[str] = Header(default=None, alias="x-tenant-id"),
    tenant_id_query: Optional[str] = Query(default=None, alias="tenantId"),
    user: User = Depends(get_current_user),
) -> Optional[str]:
    return extract_tenant_identifier(
        header=x_tenant_id,
        query=tenant_id_query,
        body=await _body_tenant_id(request),
        actor=user,
    )


async def get_tenant_context(
    identifier: Optional[str] = Depends(get_tenant_identifier),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> TenantContext:
    """
    Strict resolution: missing / unknown / suspended tenant or inactive
    subscription rejects the request, then the actor must belong to it.
    """
    ctx = await resolve_tenant(identifier, company_loader(db), actor=user)
    ensure_tenant_access(user, ctx)
    return ctx


async def get_tenant_context_optional(
    identifier: Optional[str] = Depends(get_tenant_identifier),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Optional[TenantContext]:
    """
    Optional resolution: a missing or unknown tenant yields None (a super admin
    then works across tenants). An inactive subscription still rejects.
    """
    ctx = await resolve_tenant_optional(identifier, company_loader(db), actor=user)
    if ctx is not None:
        ensure_tenant_access(user, ctx)
    return ctx


async def get_repository(
    ctx: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> BaseRepository:
    return repository_for(db, ctx)


async def get_repository_optional(
    ctx: Optional[TenantContext] = Depends(get_tenant_context_optional),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> BaseRepository:
    if ctx is None:
        # no tenant: only a super admin gets an (unscoped) repository
        ctx = TenantContext(id=None, company=None, actor=user)
    return repository_for(db, ctx)


async def require_super_admin(user: User = Depends(get_current_user)) -> User:
    if not is_super_admin(user):
        raise TenantAccessDenied("Super admin access required")
    return user


def require_roles(*allowed_roles: str):
    """
    Enforce user.role in allowed_roles. super_admin always passes.
    """
    allowed = {r.lower() for r in allowed_roles}
    unknown = allowed - ALLOWED_ROLES
    if unknown:
        raise ValueError(f"Unknown role(s): {sorted(unknown)}. Allowed: {sorted(ALLOWED_ROLES)}")

    async def _checker(user: User = Depends(get_current_user)) -> User:
        role = (user.role or "").lower()
        if role not in allowed and not is_super_admin(user):
            raise TenantAccessDenied(f"Insufficient role: {role}. Allowed: {', '.join(sorted(allowed))}")
        return user

    return _checker


def require_feature(feature_name: str):
    async def _checker(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        if ctx.is_super_admin:
            return ctx
        if not has_feature(ctx.company, feature_name):
            raise FeatureNotAvailable(feature_name, current_plan=ctx.company.plan)
        return ctx

    return _checker


def require_limit(resource: str, count: int = 1):
    async def _checker(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        decision = check_limit(ctx.company, resource, count, actor=ctx.actor)
        if not decision.allowed:
            logger.info(f"Limit reached tenant={ctx.id} resource={resource} limit={decision.limit}")
            raise LimitExceeded(
                decision.message,
                resource=resource,
                current_plan=ctx.company.plan,
                current=decision.current,
                limit=decision.limit,
                requested=decision.requested,
            )
        return ctx

    return _checker
