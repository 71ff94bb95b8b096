# backend/distrohub/api/v1/auth.py
from __future__ import annotations

import secrets
import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from distrohub.core.config import settings
from distrohub.core.dates import as_utc, utcnow
from distrohub.core.errors import AuthenticationError
from distrohub.core.security import bearer_scheme, create_access_token, decode_access_token
from distrohub.db.session import get_db
from distrohub.models.user import User
from distrohub.schemas.auth import MagicCodeRequest, MagicCodeVerify, MeResponse, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])

MAGIC_CODE_EXPIRY_MINUTES = 10


def _should_return_magic_code_in_response() -> bool:
    """Dev convenience: the code is echoed back outside staging/production."""
    env = (settings.ENVIRONMENT or "").strip().lower()
    return env not in {"staging", "production"}


def issue_token(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        extra_claims={"role": user.role, "tenant_id": user.tenant_id},
    )


async def purge_expired_magic_codes(db: AsyncSession) -> None:
    stmt = (
        update(User)
        .where(User.magic_code_expires_at.is_not(None))
        .where(User.magic_code_expires_at < utcnow())
        .values(magic_code=None, magic_code_expires_at=None)
    )
    await db.execute(stmt)


@router.post("/request-code")
async def request_code(payload: MagicCodeRequest, db: AsyncSession = Depends(get_db)):
    """
    Body: {"email": "user@example.com"}
    Accounts are created by company registration or by a company admin; an
    unknown email gets the same response without a code.
    """
    email = User.normalize_email(payload.email)

    await purge_expired_magic_codes(db)

    res = await db.execute(select(User).where(User.email == email, User.is_active.is_(True)))
    user = res.scalar_one_or_none()

    resp = {"success": True, "expires_in_minutes": MAGIC_CODE_EXPIRY_MINUTES}
    if user is None:
        await db.commit()
        return resp

    code = str(secrets.randbelow(900000) + 100000)  # 6 digits
    user.magic_code = code
    user.magic_code_expires_at = utcnow() + timedelta(minutes=MAGIC_CODE_EXPIRY_MINUTES)
    await db.commit()

    if _should_return_magic_code_in_response():
        resp["code"] = code
    return resp


@router.post("/verify-code", response_model=TokenResponse)
async def verify_code(payload: MagicCodeVerify, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    email = User.normalize_email(payload.email)
    code = payload.code.strip()

    await purge_expired_magic_codes(db)

    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()

    if not user or not user.magic_code or not user.magic_code_expires_at:
        raise AuthenticationError("Invalid code")

    if not secrets.compare_digest(user.magic_code, code):
        raise AuthenticationError("Invalid code")

    if as_utc(user.magic_code_expires_at) < utcnow():
        raise AuthenticationError("Code expired")

    # One-time use
    user.magic_code = None
    user.magic_code_expires_at = None
    user.last_login_at = utcnow()
    await db.commit()

    return TokenResponse(access_token=issue_token(user))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency for protected endpoints.
    """
    if credentials is None:
        raise AuthenticationError()

    user_id = decode_access_token(credentials.credentials)

    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise AuthenticationError("Invalid token subject")

    user = await db.get(User, user_uuid)
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User inactive")

    return user


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=str(user.id),
        email=user.email,
        is_active=user.is_active,
        role=user.role,
        tenant_id=user.tenant_id,
        is_company_owner=user.is_company_owner,
        full_name=user.full_name,
    )
