# ============================
# FILE: distrohub/core/tenancy.py
# Tenant resolution and the request-scoped tenant filter
# ============================
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from distrohub.core.errors import (
    AuthenticationError,
    MissingTenantId,
    SubscriptionInactive,
    TenantAccessDenied,
    TenantNotFound,
)
from distrohub.core.roles import is_super_admin
from distrohub.core.subscription import days_remaining, is_subscription_active

logger = logging.getLogger(__name__)

CompanyLookup = Callable[[str], Awaitable[Optional[Any]]]


@dataclass(frozen=True)
class TenantContext:
    """
    What the route layer gets after resolution.

    `filter` is the only place the tenant filter is derived; repositories and
    handlers read it from here.
    """

    id: Optional[str]
    company: Optional[Any]
    actor: Optional[Any] = None

    @property
    def is_super_admin(self) -> bool:
        return is_super_admin(self.actor)

    @property
    def filter(self) -> dict[str, str]:
        if self.is_super_admin:
            return {}
        if not self.id:
            raise MissingTenantId()
        return {"tenant_id": self.id}


def normalize_tenant_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip().upper()
    return v or None


def extract_tenant_identifier(
    *,
    header: Optional[str] = None,
    query: Optional[str] = None,
    body: Optional[Any] = None,
    actor: Optional[Any] = None,
) -> Optional[str]:
    """
    First non-empty source wins:
      x-tenant-id header -> tenantId query param -> tenantId body field -> actor.tenant_id
    """
    candidates = (header, query, body, getattr(actor, "tenant_id", None))
    for candidate in candidates:
        tenant_id = normalize_tenant_id(candidate)
        if tenant_id:
            return tenant_id
    return None


async def resolve_tenant(
    identifier: Optional[str],
    load_company: CompanyLookup,
    *,
    actor: Optional[Any] = None,
    now: Optional[datetime] = None,
) -> TenantContext:
    """
    1. identifier missing                       -> MissingTenantId (400)
    2. unknown, inactive or suspended company   -> TenantNotFound (404)
    3. subscription not active / end date passed -> SubscriptionInactive (403)
    """
    tenant_id = normalize_tenant_id(identifier)
    if not tenant_id:
        logger.info("Tenant rejected: TENANT_ID_REQUIRED")
        raise MissingTenantId()

    company = await load_company(tenant_id)
    if company is None or not company.is_active or company.is_suspended:
        logger.info(f"Tenant rejected: TENANT_NOT_FOUND tenant={tenant_id}")
        raise TenantNotFound()

    if not is_subscription_active(company, now):
        logger.info(f"Tenant rejected: SUBSCRIPTION_INACTIVE tenant={tenant_id}")
        raise SubscriptionInactive(
            subscription_status=company.subscription_status,
            days_remaining=days_remaining(company, now),
        )

    return TenantContext(id=tenant_id, company=company, actor=actor)


async def resolve_tenant_optional(
    identifier: Optional[str],
    load_company: CompanyLookup,
    *,
    actor: Optional[Any] = None,
    now: Optional[datetime] = None,
) -> Optional[TenantContext]:
    """
    Like resolve_tenant, but a missing or unknown tenant yields None.
    An inactive subscription is still a hard stop.
    """
    try:
        return await resolve_tenant(identifier, load_company, actor=actor, now=now)
    except (MissingTenantId, TenantNotFound):
        return None


def ensure_tenant_access(actor: Optional[Any], context: Optional[TenantContext]) -> None:
    """The acting user must belong to the resolved tenant unless they are a super admin."""
    if actor is None:
        raise AuthenticationError()
    if is_super_admin(actor):
        return
    if context is None or not context.id:
        raise MissingTenantId()
    if normalize_tenant_id(getattr(actor, "tenant_id", None)) != context.id:
        logger.info(f"Tenant rejected: TENANT_ACCESS_DENIED tenant={context.id}")
        raise TenantAccessDenied()
