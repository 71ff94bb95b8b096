# tests/factories.py
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Optional

from distrohub.core.dates import utcnow
from distrohub.core.security import create_access_token
from distrohub.core.subscription import plan_defaults
from distrohub.models.company import Company
from distrohub.models.dealer import Dealer
from distrohub.models.dealer_group import DealerGroup
from distrohub.models.user import User


async def create_company(
    db,
    tenant_id: str,
    *,
    plan: str = "trial",
    days_left: int = 14,
    subscription_status: str = "active",
    is_active: bool = True,
    is_suspended: bool = False,
    **overrides,
) -> Company:
    defaults = plan_defaults(plan)
    now = utcnow()
    values = dict(
        tenant_id=tenant_id,
        name=f"Company {tenant_id}",
        slug=f"company-{tenant_id.lower()}",
        email=f"owner-{tenant_id.lower()}@example.com",
        plan=plan,
        subscription_status=subscription_status,
        subscription_start=now - timedelta(days=1),
        subscription_end=now + timedelta(days=days_left),
        max_users=defaults.max_users,
        max_products=defaults.max_products,
        max_orders=defaults.max_orders,
        features=dict(defaults.features),
        is_active=is_active,
        is_suspended=is_suspended,
    )
    values.update(overrides)
    company = Company(**values)
    db.add(company)
    await db.flush()
    return company


async def create_user(
    db,
    email: str,
    *,
    role: str = "company_admin",
    tenant_id: Optional[str] = None,
) -> User:
    user = User(email=email.lower().strip(), role=role, tenant_id=tenant_id, is_active=True)
    db.add(user)
    await db.flush()
    return user


async def create_group(db, tenant_id: str, code: str = "RET", **overrides) -> DealerGroup:
    values = dict(
        tenant_id=tenant_id,
        name=f"Group {code}",
        code=code,
        credit_limit=Decimal("50000"),
        credit_days=30,
        discount_percentage=Decimal("2.5"),
        commission_percentage=Decimal("1"),
    )
    values.update(overrides)
    group = DealerGroup(**values)
    db.add(group)
    await db.flush()
    return group


async def create_dealer(
    db,
    group: DealerGroup,
    code: str,
    *,
    opening_balance: Decimal = Decimal("0"),
    opening_balance_type: str = "credit",
    current_balance: Optional[Decimal] = None,
) -> Dealer:
    if current_balance is None:
        current_balance = -opening_balance if opening_balance_type == "credit" else opening_balance
    dealer = Dealer(
        tenant_id=group.tenant_id,
        dealer_group_id=group.id,
        dealer_code=code,
        name=f"Dealer {code}",
        opening_balance=opening_balance,
        opening_balance_type=opening_balance_type,
        current_balance=current_balance,
    )
    db.add(dealer)
    await db.flush()
    return dealer


def auth_headers(user: User, tenant_id: Optional[str] = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
    if tenant_id:
        headers["x-tenant-id"] = tenant_id
    return headers
