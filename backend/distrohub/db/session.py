from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from distrohub.core.config import settings


def engine_options(url: str) -> dict[str, Any]:
    """
    Pool settings per backend. aiosqlite (tests, local runs) shares one file or
    memory database across threads; Postgres gets liveness checks and recycling.
    """
    options: dict[str, Any] = {"echo": settings.DB_ECHO, "future": True}
    if make_url(url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
        options["pool_recycle"] = settings.DB_POOL_RECYCLE
    return options


# -----------------------------
# Async engine (FastAPI)
# -----------------------------
# CLEAN URL: asyncpg rejects sslmode/channel_binding query params.
DATABASE_URL_ASYNC = settings.DATABASE_URL_ASYNC_CLEAN

engine: AsyncEngine = create_async_engine(DATABASE_URL_ASYNC, **engine_options(DATABASE_URL_ASYNC))

# expire_on_commit=False: handlers serialize objects after commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One AsyncSession per request. A handler that raises leaves nothing
    half-written: the open transaction is rolled back before the session closes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
