from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from distrohub.core.config import settings
from distrohub.core.errors import AuthenticationError

# auto_error=False: a missing header is reported through AuthenticationError (401)
bearer_scheme = HTTPBearer(auto_error=False)


def _normalize_token(token: Optional[str]) -> str:
    """
    Make token decoding resilient to common Swagger / copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


def create_access_token(
    subject: str,
    expires_minutes: Optional[int] = None,
    extra_claims: Optional[dict[str, Any]] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire_dt = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode: dict[str, Any] = dict(extra_claims or {})
    to_encode.update(
        {
            "sub": str(subject),
            "exp": int(expire_dt.timestamp()),
            "iat": int(now.timestamp()),
        }
    )

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: Optional[str]) -> str:
    token = _normalize_token(token)
    if not token:
        raise AuthenticationError("Invalid token")

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        # expired signature, bad format, bad signature, wrong algorithm...
        raise AuthenticationError("Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise AuthenticationError("Invalid token")
    return str(sub)
