from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from distrohub.schemas.common import Money
from distrohub.schemas.dealer import DealerTransactionOut


class OrderCreate(BaseModel):
    dealer_id: UUID
    total: Decimal = Field(gt=0)
    status: Literal["pending", "processing", "confirmed", "delivered"] = "pending"


class OrderOut(BaseModel):
    id: UUID
    tenant_id: str
    dealer_id: UUID
    order_number: str
    status: str
    total: Money
    paid_amount: Money
    payment_date: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderListOut(BaseModel):
    items: List[OrderOut]
    total: int


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)


class OrderLedgerOut(BaseModel):
    """Order mutation result; echoes the dealer balance after the ledger write."""

    success: bool = True
    order: OrderOut
    current_balance: Money
    transaction: DealerTransactionOut
