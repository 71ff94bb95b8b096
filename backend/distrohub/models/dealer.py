# backend/distrohub/models/dealer.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from distrohub.core.dates import utcnow
from distrohub.db.base import Base


class Dealer(Base):
    """
    current_balance is only ever moved by `distrohub.crud.dealer`:
      - record_transaction / apply_transaction (log append + balance write, one commit)
      - update_dealer (shift by the change in the signed opening figure)
    """

    __tablename__ = "dealers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "dealer_code", name="uq_dealers_tenant_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(20), index=True, nullable=False)

    dealer_group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("dealer_groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    dealer_code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    business_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # -----------------------------
    # Financial info
    # -----------------------------
    opening_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    # credit | debit
    opening_balance_type: Mapped[str] = mapped_column(String(10), nullable=False, default="credit")
    current_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    credit_limit: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    credit_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    commission_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))

    # active | inactive | suspended | pending_approval
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def balance_status(self) -> str:
        balance = self.current_balance or Decimal("0")
        if balance > 0:
            return "debit"
        if balance < 0:
            return "credit"
        return "balanced"


class DealerTransaction(Base):
    """
    Append-only dealer ledger. `seq` orders entries per dealer; the unique
    (dealer_id, seq) constraint turns a concurrent append race into an error
    instead of a silently interleaved log.
    """

    __tablename__ = "dealer_transactions"
    __table_args__ = (
        UniqueConstraint("dealer_id", "seq", name="uq_dealer_transactions_dealer_seq"),
        Index("ix_dealer_transactions_tenant_dealer_date", "tenant_id", "dealer_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(20), nullable=False)
    dealer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("dealers.id", ondelete="CASCADE"),
        nullable=False,
    )

    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    # credit | debit
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    # Order | Payment | Adjustment | Opening Balance | System | Manual | Migration | Correction
    reference_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
