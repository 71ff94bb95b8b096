# backend/distrohub/models/company.py

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from distrohub.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Company(Base):
    """A tenant. Never hard-deleted: see is_active / is_suspended."""

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # "001", "002", ... or a "T<base36>" fallback token
    tenant_id: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # dairy | food | beverage | retail | other
    business_type: Mapped[str] = mapped_column(String(20), nullable=False, default="dairy")

    # -----------------------------
    # Subscription
    # -----------------------------
    plan: Mapped[str] = mapped_column(String(20), nullable=False, default="trial")
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    subscription_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    subscription_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_users: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    max_products: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    max_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    features: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # -----------------------------
    # Usage stats (what plan limits are checked against)
    # -----------------------------
    total_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_products: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # -----------------------------
    # Account state
    # -----------------------------
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    suspension_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    suspended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
