# distrohub/core/roles.py

import enum


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"        # platform operator, bypasses tenant scoping and limits
    COMPANY_ADMIN = "company_admin"    # tenant owner / administrator
    MANAGER = "manager"
    STAFF = "staff"


TENANT_ROLES = {UserRole.COMPANY_ADMIN.value, UserRole.MANAGER.value, UserRole.STAFF.value}


def is_super_admin(actor) -> bool:
    """Accepts a User, anything with a `.role`, or None."""
    if actor is None:
        return False
    role = getattr(actor, "role", None)
    role = getattr(role, "value", role)
    return (role or "").strip().lower() == UserRole.SUPER_ADMIN.value
