"""Application errors.

Every business rejection carries a stable machine-checkable ``reason``, a
human readable ``message`` and optional metadata. The FastAPI app renders them
as ``{"success": false, "reason": ..., "message": ..., **payload}``.
"""
from __future__ import annotations

from typing import Any, Optional


class DistroError(Exception):
    """Base exception for all application errors."""

    status_code = 500
    reason = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An internal error occurred",
        *,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if reason is not None:
            self.reason = reason
        self.payload = payload or {}

    def to_dict(self) -> dict[str, Any]:
        rv = dict(self.payload)
        rv["success"] = False
        rv["reason"] = self.reason
        rv["message"] = self.message
        return rv


class AuthenticationError(DistroError):
    status_code = 401
    reason = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


# ---------------------------------------------------------
# Tenancy
# ---------------------------------------------------------
class MissingTenantId(DistroError):
    status_code = 400
    reason = "TENANT_ID_REQUIRED"

    def __init__(self, message: str = "Tenant ID is required"):
        super().__init__(message)


class TenantNotFound(DistroError):
    status_code = 404
    reason = "TENANT_NOT_FOUND"

    def __init__(self, message: str = "Company not found or suspended", tenant_id: Optional[str] = None):
        super().__init__(message, payload={"tenant_id": tenant_id} if tenant_id else None)


class SubscriptionInactive(DistroError):
    status_code = 403
    reason = "SUBSCRIPTION_INACTIVE"

    def __init__(self, subscription_status: Optional[str], days_remaining: int):
        super().__init__(
            "Company subscription is not active",
            payload={
                "subscription_status": subscription_status,
                "days_remaining": days_remaining,
            },
        )


class TenantAccessDenied(DistroError):
    status_code = 403
    reason = "TENANT_ACCESS_DENIED"

    def __init__(self, message: str = "Access denied: User does not belong to this company"):
        super().__init__(message)


# ---------------------------------------------------------
# Subscription gate
# ---------------------------------------------------------
class FeatureNotAvailable(DistroError):
    status_code = 403
    reason = "FEATURE_NOT_AVAILABLE"

    def __init__(self, feature: str, current_plan: Optional[str]):
        super().__init__(
            f"Feature '{feature}' not available in current plan",
            payload={"feature": feature, "current_plan": current_plan},
        )


class LimitExceeded(DistroError):
    status_code = 403
    reason = "LIMIT_EXCEEDED"

    def __init__(self, message: str, *, resource: str, current_plan: Optional[str], **metadata: Any):
        super().__init__(
            message,
            payload={"resource": resource, "current_plan": current_plan, **metadata},
        )


# ---------------------------------------------------------
# Generic business errors
# ---------------------------------------------------------
class ResourceNotFound(DistroError):
    status_code = 404
    reason = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class ConflictError(DistroError):
    """Duplicate unique key on creation. Never retried automatically."""

    status_code = 400
    reason = "CONFLICT"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, payload={"field": field} if field else None)


class BusinessRuleError(DistroError):
    status_code = 400
    reason = "BUSINESS_RULE"


class LedgerConsistencyError(DistroError):
    """The balance write and the log append did not land together."""

    status_code = 500
    reason = "LEDGER_CONSISTENCY"
