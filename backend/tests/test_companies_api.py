# tests/test_companies_api.py
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from distrohub.core.dates import utcnow
from distrohub.core.tenant_ids import TenantIdAllocator
from distrohub.models.company import Company
from distrohub.models.user import User

from factories import auth_headers, create_company, create_user


def _register_payload(**overrides):
    payload = {
        "company_name": "Acme Dairy",
        "email": "Owner@Acme.io",
        "owner_name": "Asha  Rao",
        "phone": "+919812345678",
        "business_type": "dairy",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------
# Registration
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_register_creates_trial_tenant_and_owner(client, db):
    r = await client.post("/api/v1/companies/register", json=_register_payload())
    assert r.status_code == 201, r.text
    body = r.json()

    assert body["success"] is True
    assert body["company"]["tenant_id"] == "001"
    assert body["company"]["slug"] == "acme-dairy"
    assert body["company"]["plan"] == "trial"
    assert body["company"]["total_users"] == 1
    assert body["user"]["email"] == "owner@acme.io"
    assert body["user"]["full_name"] == "Asha Rao"
    assert body["user"]["role"] == "company_admin"
    assert body["user"]["is_company_owner"] is True

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["tenant_id"] == "001"

    company = (await db.execute(select(Company).where(Company.tenant_id == "001"))).scalar_one()
    trial = company.subscription_end - company.subscription_start
    assert trial == timedelta(days=14)


@pytest.mark.asyncio
async def test_second_registration_gets_next_id_and_unique_slug(client):
    r1 = await client.post("/api/v1/companies/register", json=_register_payload())
    r2 = await client.post("/api/v1/companies/register", json=_register_payload(email="second@acme.io"))

    assert r2.status_code == 201, r2.text
    assert r1.json()["company"]["tenant_id"] == "001"
    assert r2.json()["company"]["tenant_id"] == "002"
    assert r2.json()["company"]["slug"] == "acme-dairy-1"


@pytest.mark.asyncio
async def test_duplicate_email_is_a_conflict(client, db):
    await create_user(db, "owner@acme.io", role="staff", tenant_id=None)
    await db.commit()

    r = await client.post("/api/v1/companies/register", json=_register_payload())

    assert r.status_code == 400
    assert r.json()["reason"] == "CONFLICT"
    assert r.json()["field"] == "email"


@pytest.mark.asyncio
async def test_lost_tenant_id_race_is_a_conflict_and_writes_nothing(client, db, monkeypatch):
    await create_company(db, "001")
    await db.commit()

    # another registration took 001 after this one's max/exists lookups ran
    async def _stale_max():
        return None

    async def _stale_exists(tenant_id):
        return False

    monkeypatch.setattr(
        "distrohub.crud.company.sql_tenant_id_allocator",
        lambda session: TenantIdAllocator(_stale_max, _stale_exists),
    )

    r = await client.post("/api/v1/companies/register", json=_register_payload())

    assert r.status_code == 400
    assert r.json()["reason"] == "CONFLICT"
    assert r.json()["field"] == "tenant_id"
    companies = (await db.execute(select(Company))).scalars().all()
    assert [c.tenant_id for c in companies] == ["001"]
    owner = (await db.execute(select(User).where(User.email == "owner@acme.io"))).scalar_one_or_none()
    assert owner is None


@pytest.mark.asyncio
async def test_register_validation_errors_are_400(client):
    r = await client.post("/api/v1/companies/register", json=_register_payload(company_name="A", phone="abc"))

    assert r.status_code == 400
    body = r.json()
    assert body["reason"] == "VALIDATION_ERROR"
    assert {e["field"] for e in body["errors"]} == {"company_name", "phone"}


@pytest.mark.asyncio
async def test_next_tenant_id_skips_deleted_ids(client, db):
    for tenant_id in ("001", "002", "005"):
        await create_company(db, tenant_id)
    await db.commit()

    r = await client.get("/api/v1/companies/next-tenant-id")

    assert r.status_code == 200
    assert r.json() == {"tenant_id": "006"}


# ---------------------------------------------------------
# Magic code login
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_magic_code_round_trip(client, db):
    await create_company(db, "001")
    await create_user(db, "admin@acme.io", tenant_id="001")
    await db.commit()

    r = await client.post("/api/v1/auth/request-code", json={"email": "ADMIN@acme.io"})
    assert r.status_code == 200
    code = r.json()["code"]

    bad = await client.post("/api/v1/auth/verify-code", json={"email": "admin@acme.io", "code": "000000"})
    assert bad.status_code == 401
    assert bad.json()["reason"] == "UNAUTHENTICATED"

    ok = await client.post("/api/v1/auth/verify-code", json={"email": "admin@acme.io", "code": code})
    assert ok.status_code == 200
    token = ok.json()["access_token"]

    # one-time use
    again = await client.post("/api/v1/auth/verify-code", json={"email": "admin@acme.io", "code": code})
    assert again.status_code == 401

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "admin@acme.io"


@pytest.mark.asyncio
async def test_unknown_email_gets_no_code(client):
    r = await client.post("/api/v1/auth/request-code", json={"email": "ghost@acme.io"})

    assert r.status_code == 200
    assert "code" not in r.json()


# ---------------------------------------------------------
# Current company (tenant resolution over HTTP)
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_current_company_uses_actor_tenant(client, db):
    await create_company(db, "001")
    user = await create_user(db, "admin@acme.io", tenant_id="001")
    await db.commit()

    r = await client.get("/api/v1/companies/current", headers=auth_headers(user))

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["tenant_id"] == "001"
    assert body["subscription_active"] is True
    assert body["days_remaining"] == 14


@pytest.mark.asyncio
async def test_current_company_with_expired_subscription_is_403(client, db):
    await create_company(db, "001", days_left=-1)
    user = await create_user(db, "admin@acme.io", tenant_id="001")
    await db.commit()

    r = await client.get("/api/v1/companies/current", headers=auth_headers(user))

    assert r.status_code == 403
    assert r.json()["reason"] == "SUBSCRIPTION_INACTIVE"
    assert r.json()["days_remaining"] == 0


@pytest.mark.asyncio
async def test_unknown_tenant_is_404(client, db):
    await create_company(db, "001")
    admin = await create_user(db, "root@distrohub.io", role="super_admin")
    await db.commit()

    r = await client.get("/api/v1/companies/current", headers=auth_headers(admin, "999"))

    assert r.status_code == 404
    assert r.json()["reason"] == "TENANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_query_param_tenant_is_normalized(client, db):
    await create_company(db, "TKX1")
    admin = await create_user(db, "root@distrohub.io", role="super_admin")
    await db.commit()

    r = await client.get("/api/v1/companies/current", params={"tenantId": "tkx1"}, headers=auth_headers(admin))

    assert r.status_code == 200
    assert r.json()["tenant_id"] == "TKX1"


@pytest.mark.asyncio
async def test_super_admin_without_tenant_on_strict_route_is_400(client, db):
    admin = await create_user(db, "root@distrohub.io", role="super_admin")
    await db.commit()

    r = await client.get("/api/v1/companies/current", headers=auth_headers(admin))

    assert r.status_code == 400
    assert r.json()["reason"] == "TENANT_ID_REQUIRED"


@pytest.mark.asyncio
async def test_missing_token_is_401(client):
    r = await client.get("/api/v1/companies/current", headers={"x-tenant-id": "001"})

    assert r.status_code == 401
    assert r.json()["success"] is False


# ---------------------------------------------------------
# SaaS admin
# ---------------------------------------------------------
async def _admin_setup(db):
    await create_company(db, "001")
    await create_company(db, "002", plan="basic", is_suspended=True, suspension_reason="Unpaid")
    admin = await create_user(db, "root@distrohub.io", role="super_admin")
    member = await create_user(db, "admin@acme.io", tenant_id="001")
    await db.commit()
    return admin, member


@pytest.mark.asyncio
async def test_saas_admin_routes_require_super_admin(client, db):
    _, member = await _admin_setup(db)

    r = await client.get("/api/v1/saas-admin/tenants", headers=auth_headers(member))

    assert r.status_code == 403
    assert r.json()["reason"] == "TENANT_ACCESS_DENIED"


@pytest.mark.asyncio
async def test_list_tenants_with_filters(client, db):
    admin, _ = await _admin_setup(db)

    everything = await client.get("/api/v1/saas-admin/tenants", headers=auth_headers(admin))
    suspended = await client.get(
        "/api/v1/saas-admin/tenants", params={"status": "suspended"}, headers=auth_headers(admin)
    )
    basic = await client.get("/api/v1/saas-admin/tenants", params={"plan": "BASIC"}, headers=auth_headers(admin))

    assert everything.json()["total"] == 2
    assert [c["tenant_id"] for c in suspended.json()["items"]] == ["002"]
    assert [c["tenant_id"] for c in basic.json()["items"]] == ["002"]


@pytest.mark.asyncio
async def test_get_tenant_in_any_state(client, db):
    admin, _ = await _admin_setup(db)

    r = await client.get("/api/v1/saas-admin/tenants/002", headers=auth_headers(admin))
    missing = await client.get("/api/v1/saas-admin/tenants/404", headers=auth_headers(admin))

    assert r.status_code == 200
    assert r.json()["suspension_reason"] == "Unpaid"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_suspend_requires_reason_and_hides_tenant(client, db):
    admin, member = await _admin_setup(db)

    no_reason = await client.patch(
        "/api/v1/saas-admin/tenants/001/suspend", json={"is_suspended": True}, headers=auth_headers(admin)
    )
    assert no_reason.status_code == 400
    assert no_reason.json()["reason"] == "BUSINESS_RULE"

    r = await client.patch(
        "/api/v1/saas-admin/tenants/001/suspend",
        json={"is_suspended": True, "reason": "Chargeback"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["is_suspended"] is True

    blocked = await client.get("/api/v1/companies/current", headers=auth_headers(member))
    assert blocked.status_code == 404

    await client.patch(
        "/api/v1/saas-admin/tenants/001/suspend", json={"is_suspended": False}, headers=auth_headers(admin)
    )
    back = await client.get("/api/v1/companies/current", headers=auth_headers(member))
    assert back.status_code == 200


@pytest.mark.asyncio
async def test_deactivate_tenant_deactivates_its_users(client, db):
    admin, member = await _admin_setup(db)

    r = await client.patch(
        "/api/v1/saas-admin/tenants/001/activate", json={"is_active": False}, headers=auth_headers(admin)
    )

    assert r.status_code == 200
    assert r.json()["is_active"] is False
    assert r.json()["is_suspended"] is True
    await db.refresh(member)
    assert member.is_active is False

    me = await client.get("/api/v1/auth/me", headers=auth_headers(member))
    assert me.status_code == 401


@pytest.mark.asyncio
async def test_plan_change_resets_limits_and_keeps_explicit_overrides(client, db):
    admin, _ = await _admin_setup(db)
    new_end = (utcnow() + timedelta(days=365)).isoformat()

    r = await client.patch(
        "/api/v1/saas-admin/tenants/001/subscription",
        json={"plan": "professional", "max_orders": 50, "subscription_end": new_end},
        headers=auth_headers(admin),
    )

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["plan"] == "professional"
    assert body["max_users"] == 25
    assert body["max_orders"] == 50
    assert body["features"]["advancedReports"] is True
    assert body["days_remaining"] in (364, 365)


@pytest.mark.asyncio
async def test_delete_tenant_is_soft(client, db):
    admin, member = await _admin_setup(db)

    r = await client.delete("/api/v1/saas-admin/tenants/001", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["tenant_id"] == "001"

    company = (await db.execute(select(Company).where(Company.tenant_id == "001"))).scalar_one()
    await db.refresh(company)
    assert company.is_active is False
    assert company.suspension_reason == "Deleted by SaaS Admin"

    still_there = (await db.execute(select(User).where(User.id == member.id))).scalar_one()
    await db.refresh(still_there)
    assert still_there.is_active is False
