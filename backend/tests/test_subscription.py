# tests/test_subscription.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from distrohub.core.subscription import (
    check_limit,
    days_remaining,
    has_feature,
    is_subscription_active,
    plan_defaults,
    subscription_progress,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def company(**overrides):
    values = dict(
        subscription_status="active",
        subscription_start=NOW - timedelta(days=10),
        subscription_end=NOW + timedelta(days=20),
        max_users=5,
        total_users=0,
        max_products=100,
        total_products=0,
        max_orders=1000,
        total_orders=0,
        features={"reporting": True, "apiAccess": False},
    )
    values.update(overrides)
    return SimpleNamespace(**values)


SUPER_ADMIN = SimpleNamespace(role="super_admin", tenant_id=None)
STAFF = SimpleNamespace(role="staff", tenant_id="001")


# ---------------------------------------------------------
# Limits
# ---------------------------------------------------------
@pytest.mark.parametrize(
    "current, requested, allowed",
    [
        (0, 1, True),
        (4, 1, True),  # 4 + 1 == 5: reaching the limit is fine
        (5, 1, False),
        (3, 3, False),
        (5, 0, True),
    ],
)
def test_limit_boundary(current, requested, allowed):
    decision = check_limit(company(total_users=current), "users", requested)
    assert decision.allowed is allowed


def test_denied_decision_carries_counts():
    decision = check_limit(company(total_orders=1000), "orders", 2)

    assert not decision.allowed
    assert (decision.current, decision.limit, decision.requested) == (1000, 1000, 2)
    assert decision.message == "Subscription limit exceeded. Current: 1000, Limit: 1000, Requested: 2"


def test_zero_limit_is_enforced():
    assert not check_limit(company(max_products=0), "products").allowed


def test_missing_limit_or_unknown_resource_is_unlimited():
    assert check_limit(company(max_users=None, total_users=999), "users").allowed
    assert check_limit(company(), "warehouses", 50).allowed


def test_missing_usage_counts_as_zero():
    assert check_limit(company(total_users=None), "users", 5).allowed


def test_super_admin_bypasses_limits():
    assert check_limit(company(total_users=5), "users", 10, actor=SUPER_ADMIN).allowed
    assert not check_limit(company(total_users=5), "users", 1, actor=STAFF).allowed


# ---------------------------------------------------------
# Features
# ---------------------------------------------------------
def test_feature_must_be_explicitly_true():
    c = company(features={"reporting": True, "apiAccess": False, "beta": "yes"})

    assert has_feature(c, "reporting")
    assert not has_feature(c, "apiAccess")
    assert not has_feature(c, "beta")
    assert not has_feature(c, "unknown")
    assert not has_feature(company(features=None), "reporting")


def test_plan_defaults_fall_back_to_trial():
    assert plan_defaults("Enterprise").features["apiAccess"] is True
    assert plan_defaults("professional").max_users == 25
    assert plan_defaults("gold") == plan_defaults("trial")


# ---------------------------------------------------------
# Subscription state
# ---------------------------------------------------------
def test_subscription_active_requires_status_and_future_end():
    assert is_subscription_active(company(), NOW)
    assert not is_subscription_active(company(subscription_status="inactive"), NOW)
    assert not is_subscription_active(company(subscription_end=NOW), NOW)
    assert not is_subscription_active(company(subscription_end=NOW - timedelta(seconds=1)), NOW)
    assert not is_subscription_active(company(subscription_end=None), NOW)


def test_naive_end_date_is_read_as_utc():
    naive_end = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    assert is_subscription_active(company(subscription_end=naive_end), NOW)


def test_days_remaining_rounds_up_and_floors_at_zero():
    assert days_remaining(company(subscription_end=NOW + timedelta(days=2, hours=1)), NOW) == 3
    assert days_remaining(company(subscription_end=NOW + timedelta(days=14)), NOW) == 14
    assert days_remaining(company(subscription_end=NOW - timedelta(days=3)), NOW) == 0
    assert days_remaining(company(subscription_end=None), NOW) == 0


def test_subscription_progress_is_clamped():
    assert subscription_progress(company(), NOW) == 33
    assert subscription_progress(company(subscription_end=NOW - timedelta(days=1)), NOW) == 100
    assert subscription_progress(company(subscription_start=NOW + timedelta(days=1)), NOW) == 0
