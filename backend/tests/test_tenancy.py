# tests/test_tenancy.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from distrohub.core.errors import (
    AuthenticationError,
    MissingTenantId,
    SubscriptionInactive,
    TenantAccessDenied,
    TenantNotFound,
)
from distrohub.core.tenancy import (
    TenantContext,
    ensure_tenant_access,
    extract_tenant_identifier,
    resolve_tenant,
    resolve_tenant_optional,
)
from distrohub.crud.company import company_loader
from distrohub.models.dealer import Dealer
from distrohub.models.dealer_group import DealerGroup
from distrohub.repositories.scoped import (
    BaseRepository,
    TenantScopedRepository,
    UnscopedRepository,
    repository_for,
)

from factories import create_company, create_dealer, create_group, create_user

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

SUPER_ADMIN = SimpleNamespace(role="super_admin", tenant_id=None)


def member(tenant_id="001", role="staff"):
    return SimpleNamespace(role=role, tenant_id=tenant_id)


def fake_company(tenant_id="001", **overrides):
    values = dict(
        tenant_id=tenant_id,
        plan="trial",
        is_active=True,
        is_suspended=False,
        subscription_status="active",
        subscription_end=NOW + timedelta(days=5),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def loader(*companies):
    by_id = {c.tenant_id: c for c in companies}

    async def _load(tenant_id):
        return by_id.get(tenant_id)

    return _load


# ---------------------------------------------------------
# Identifier extraction
# ---------------------------------------------------------
def test_header_wins_over_every_other_source():
    assert extract_tenant_identifier(header="002", query="003", body="004", actor=member("001")) == "002"


def test_sources_fall_through_in_priority_order():
    assert extract_tenant_identifier(header="  ", query="003", body="004", actor=member("001")) == "003"
    assert extract_tenant_identifier(body="004", actor=member("001")) == "004"
    assert extract_tenant_identifier(actor=member("001")) == "001"
    assert extract_tenant_identifier(actor=SUPER_ADMIN) is None


def test_identifier_is_uppercased_and_trimmed():
    assert extract_tenant_identifier(header=" tk9ab ") == "TK9AB"


# ---------------------------------------------------------
# Resolution pipeline
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_resolve_returns_context_with_filter():
    c = fake_company("001")
    ctx = await resolve_tenant("001", loader(c), actor=member("001"), now=NOW)

    assert ctx.id == "001"
    assert ctx.company is c
    assert ctx.filter == {"tenant_id": "001"}


@pytest.mark.asyncio
async def test_missing_identifier_is_400():
    with pytest.raises(MissingTenantId) as exc:
        await resolve_tenant(None, loader(), now=NOW)
    assert exc.value.status_code == 400
    assert exc.value.to_dict()["reason"] == "TENANT_ID_REQUIRED"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "company",
    [
        None,
        fake_company("001", is_active=False),
        fake_company("001", is_suspended=True),
    ],
)
async def test_unknown_inactive_or_suspended_tenant_is_404(company):
    companies = [company] if company else []
    with pytest.raises(TenantNotFound) as exc:
        await resolve_tenant("001", loader(*companies), now=NOW)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_expired_subscription_rejects_with_zero_days_remaining():
    expired = fake_company("001", subscription_end=NOW - timedelta(days=1))

    with pytest.raises(SubscriptionInactive) as exc:
        await resolve_tenant("001", loader(expired), actor=member("001"), now=NOW)

    body = exc.value.to_dict()
    assert exc.value.status_code == 403
    assert body["reason"] == "SUBSCRIPTION_INACTIVE"
    assert body["days_remaining"] == 0
    assert body["subscription_status"] == "active"


@pytest.mark.asyncio
async def test_non_active_status_rejects_even_with_time_left():
    paused = fake_company("001", subscription_status="cancelled")

    with pytest.raises(SubscriptionInactive) as exc:
        await resolve_tenant("001", loader(paused), now=NOW)

    assert exc.value.to_dict()["days_remaining"] == 5


@pytest.mark.asyncio
async def test_optional_resolution_for_super_admin_without_identifier_has_empty_filter():
    identifier = extract_tenant_identifier(actor=SUPER_ADMIN)
    ctx = await resolve_tenant_optional(identifier, loader(), actor=SUPER_ADMIN, now=NOW)
    assert ctx is None

    ctx = TenantContext(id=None, company=None, actor=SUPER_ADMIN)
    assert ctx.filter == {}


@pytest.mark.asyncio
async def test_optional_resolution_still_rejects_inactive_subscription():
    expired = fake_company("001", subscription_end=NOW - timedelta(hours=1))

    with pytest.raises(SubscriptionInactive):
        await resolve_tenant_optional("001", loader(expired), now=NOW)
    assert await resolve_tenant_optional("999", loader(expired), now=NOW) is None


def test_context_without_tenant_has_no_filter_for_regular_users():
    with pytest.raises(MissingTenantId):
        TenantContext(id=None, company=None, actor=member("001")).filter


# ---------------------------------------------------------
# Actor / tenant matching
# ---------------------------------------------------------
def test_member_of_other_tenant_is_denied():
    ctx = TenantContext(id="002", company=fake_company("002"), actor=member("001"))

    with pytest.raises(TenantAccessDenied):
        ensure_tenant_access(member("001"), ctx)
    ensure_tenant_access(member("002"), ctx)
    ensure_tenant_access(SUPER_ADMIN, ctx)


def test_anonymous_actor_is_unauthenticated():
    with pytest.raises(AuthenticationError):
        ensure_tenant_access(None, TenantContext(id="001", company=None))


# ---------------------------------------------------------
# Repositories against the database
# ---------------------------------------------------------
async def _two_tenants(db):
    c1 = await create_company(db, "001")
    c2 = await create_company(db, "002")
    g1 = await create_group(db, "001")
    g2 = await create_group(db, "002")
    d1 = await create_dealer(db, g1, "DLR0001", opening_balance=Decimal("100"), opening_balance_type="debit")
    d2 = await create_dealer(db, g2, "DLR0001", opening_balance=Decimal("200"), opening_balance_type="debit")
    await db.commit()
    return c1, c2, d1, d2


@pytest.mark.asyncio
async def test_scoped_repository_never_sees_other_tenant(db):
    c1, _, d1, d2 = await _two_tenants(db)
    repo = TenantScopedRepository(db, TenantContext(id="001", company=c1, actor=member("001")))

    assert [d.id for d in await repo.list(Dealer)] == [d1.id]
    assert await repo.get(Dealer, d2.id) is None
    assert await repo.count(Dealer) == 1

    res = await db.execute(repo.update(Dealer, Dealer.id == d2.id).values(name="hijacked"))
    assert res.rowcount == 0
    await db.rollback()


@pytest.mark.asyncio
async def test_scoped_repository_stamps_and_guards_tenant_on_add(db):
    c1, _, _, _ = await _two_tenants(db)
    repo = TenantScopedRepository(db, TenantContext(id="001", company=c1, actor=member("001")))

    group = repo.add(DealerGroup(name="Wholesale", code="WHL"))
    await db.flush()
    assert group.tenant_id == "001"

    foreign = Dealer(tenant_id="002", dealer_code="X", name="X", dealer_group_id=group.id)
    with pytest.raises(TenantAccessDenied):
        repo.add(foreign)


@pytest.mark.asyncio
async def test_scoped_repository_requires_tenant_context(db):
    with pytest.raises(MissingTenantId):
        TenantScopedRepository(db, None)
    with pytest.raises(ValueError):
        TenantScopedRepository(db, TenantContext(id=None, company=None, actor=SUPER_ADMIN))
    with pytest.raises(TypeError):
        BaseRepository(db, None, {})


@pytest.mark.asyncio
async def test_unscoped_repository_is_super_admin_only(db):
    _, _, d1, d2 = await _two_tenants(db)

    with pytest.raises(TenantAccessDenied):
        UnscopedRepository.for_actor(db, member("001"))

    repo = UnscopedRepository.for_actor(db, SUPER_ADMIN)
    assert {d.id for d in await repo.list(Dealer)} == {d1.id, d2.id}


@pytest.mark.asyncio
async def test_repository_for_picks_variant_from_actor(db):
    c1, _, _, _ = await _two_tenants(db)

    scoped = repository_for(db, TenantContext(id="001", company=c1, actor=member("001")))
    unscoped = repository_for(db, TenantContext(id=None, company=None, actor=SUPER_ADMIN))

    assert isinstance(scoped, TenantScopedRepository) and scoped.is_scoped
    assert isinstance(unscoped, UnscopedRepository) and not unscoped.is_scoped


@pytest.mark.asyncio
async def test_company_loader_hides_inactive_and_suspended(db):
    await create_company(db, "001")
    await create_company(db, "002", is_suspended=True)
    await create_company(db, "003", is_active=False)
    await db.commit()

    load = company_loader(db)
    assert (await load("001")).tenant_id == "001"
    assert await load("002") is None
    assert await load("003") is None


@pytest.mark.asyncio
async def test_super_admin_user_from_database_bypasses_scoping(db):
    _, _, d1, d2 = await _two_tenants(db)
    admin = await create_user(db, "root@example.com", role="super_admin")
    await db.commit()

    repo = repository_for(db, TenantContext(id=None, company=None, actor=admin))

    assert await repo.count(Dealer) == 2
