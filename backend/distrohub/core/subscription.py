# ============================
# FILE: distrohub/core/subscription.py
# Plan limits, feature flags and subscription state
# ============================
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from distrohub.core.dates import as_utc, utcnow
from distrohub.core.roles import is_super_admin

SUBSCRIPTION_ACTIVE = "active"

PLANS = ("trial", "basic", "professional", "enterprise")
SUBSCRIPTION_STATUSES = ("active", "inactive", "suspended", "cancelled", "expired")

# resource kind -> (limit attribute, usage attribute) on the company record
RESOURCE_FIELDS: dict[str, tuple[str, str]] = {
    "users": ("max_users", "total_users"),
    "products": ("max_products", "total_products"),
    "orders": ("max_orders", "total_orders"),
}


@dataclass(frozen=True)
class PlanDefaults:
    max_users: int
    max_products: int
    max_orders: int
    features: dict[str, bool] = field(default_factory=dict)


_BASE_FEATURES = {
    "reporting": True,
    "inventory": True,
    "multiWarehouse": False,
    "advancedReports": False,
    "apiAccess": False,
    "customBranding": False,
}

PLAN_DEFAULTS: dict[str, PlanDefaults] = {
    "trial": PlanDefaults(max_users=5, max_products=100, max_orders=1000, features=dict(_BASE_FEATURES)),
    "basic": PlanDefaults(max_users=10, max_products=500, max_orders=5000, features=dict(_BASE_FEATURES)),
    "professional": PlanDefaults(
        max_users=25,
        max_products=2000,
        max_orders=25000,
        features={**_BASE_FEATURES, "multiWarehouse": True, "advancedReports": True},
    ),
    "enterprise": PlanDefaults(
        max_users=100,
        max_products=10000,
        max_orders=100000,
        features={k: True for k in _BASE_FEATURES},
    ),
}


def normalize_plan(value: str | None) -> str:
    return (value or "").strip().lower()


def plan_defaults(plan: str | None) -> PlanDefaults:
    """
    Default limits/features for a plan. Unknown plans get the trial defaults.
    """
    p = normalize_plan(plan)
    return PLAN_DEFAULTS.get(p, PLAN_DEFAULTS["trial"])


def days_remaining(company, now: Optional[datetime] = None) -> int:
    end = as_utc(getattr(company, "subscription_end", None))
    if end is None:
        return 0
    now = now or utcnow()
    remaining = (end - now).total_seconds() / 86400
    return max(0, math.ceil(remaining))


def subscription_progress(company, now: Optional[datetime] = None) -> int:
    """Percentage (0-100) of the subscription period already elapsed."""
    start = as_utc(getattr(company, "subscription_start", None))
    end = as_utc(getattr(company, "subscription_end", None))
    if start is None or end is None:
        return 0
    total = (end - start).total_seconds()
    if total <= 0:
        return 100
    now = now or utcnow()
    elapsed = (now - start).total_seconds()
    return round(min(100.0, max(0.0, elapsed / total * 100)))


def is_subscription_active(company, now: Optional[datetime] = None) -> bool:
    """
    Subscription state only: status must be "active" and the end date in the future.
    Account flags (is_active / is_suspended) are checked separately by tenant resolution.
    """
    status = (getattr(company, "subscription_status", None) or "").strip().lower()
    if status != SUBSCRIPTION_ACTIVE:
        return False
    end = as_utc(getattr(company, "subscription_end", None))
    if end is None:
        return False
    return end > (now or utcnow())


@dataclass(frozen=True)
class LimitDecision:
    allowed: bool
    message: Optional[str] = None
    current: Optional[int] = None
    limit: Optional[int] = None
    requested: int = 0


def check_limit(company, resource: str, requested: int = 1, actor=None) -> LimitDecision:
    """
    Deny only when current usage + requested strictly exceeds the plan limit.
    Super admins bypass the check. A resource without a configured limit is allowed.
    """
    if is_super_admin(actor):
        return LimitDecision(allowed=True, requested=requested)

    fields = RESOURCE_FIELDS.get(resource)
    if fields is None:
        return LimitDecision(allowed=True, requested=requested)

    limit_attr, usage_attr = fields
    limit = getattr(company, limit_attr, None)
    if limit is None:
        return LimitDecision(allowed=True, requested=requested)

    current = int(getattr(company, usage_attr, 0) or 0)
    limit = int(limit)
    if current + requested > limit:
        return LimitDecision(
            allowed=False,
            message=f"Subscription limit exceeded. Current: {current}, Limit: {limit}, Requested: {requested}",
            current=current,
            limit=limit,
            requested=requested,
        )
    return LimitDecision(allowed=True, current=current, limit=limit, requested=requested)


def has_feature(company, feature_name: str) -> bool:
    features = getattr(company, "features", None) or {}
    return features.get(feature_name) is True
