# backend/distrohub/models/order.py

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from distrohub.core.dates import utcnow
from distrohub.db.base import Base


class Order(Base):
    """Dealer order; only the fields the dealer ledger needs."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="uq_orders_tenant_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(String(20), index=True, nullable=False)
    dealer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("dealers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # ORD<yy><mm><dd><seq4>
    order_number: Mapped[str] = mapped_column(String(20), nullable=False)

    # pending | processing | confirmed | delivered | cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)

    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
