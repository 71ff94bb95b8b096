# backend/distrohub/api/v1/users.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from distrohub.api.deps.tenant import get_repository, get_repository_optional, require_limit, require_roles
from distrohub.core.errors import ConflictError
from distrohub.core.roles import UserRole
from distrohub.core.tenancy import TenantContext
from distrohub.crud.company import increment_stat
from distrohub.models.user import User
from distrohub.repositories.scoped import BaseRepository
from distrohub.schemas.user import UserCreate, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserOut])
async def list_users(repo: BaseRepository = Depends(get_repository_optional)):
    """Tenant users; a super admin without a tenant sees every user."""
    return await repo.list(User, order_by=(User.created_at,))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    ctx: TenantContext = Depends(require_limit("users")),
    repo: BaseRepository = Depends(get_repository),
    _admin: User = Depends(require_roles(UserRole.COMPANY_ADMIN.value)),
):
    email = User.normalize_email(payload.email)
    existing = await repo.db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("A user with this email already exists", field="email")

    user = User(
        email=email,
        full_name=payload.full_name,
        phone=payload.phone,
        role=payload.role,
        tenant_id=ctx.id,
        is_active=True,
    )
    repo.add(user)
    await increment_stat(repo.db, ctx.id, "users")
    try:
        await repo.db.commit()
    except IntegrityError:
        await repo.db.rollback()
        raise ConflictError("A user with this email already exists", field="email")

    await repo.db.refresh(user)
    return user
