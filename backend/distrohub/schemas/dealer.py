from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from distrohub.schemas.common import Money

EntryType = Literal["credit", "debit"]


# ---------------------------------------------------------
# Dealer groups
# ---------------------------------------------------------
class DealerGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=20)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0)
    credit_days: int = Field(default=0, ge=0, le=365)
    commission_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class DealerGroupOut(BaseModel):
    id: UUID
    tenant_id: str
    name: str
    code: str
    discount_percentage: Money
    credit_limit: Money
    credit_days: int
    commission_percentage: Money
    is_active: bool

    model_config = {"from_attributes": True}


# ---------------------------------------------------------
# Dealers
# ---------------------------------------------------------
class DealerCreate(BaseModel):
    dealer_group_id: UUID
    name: str = Field(min_length=1, max_length=100)
    dealer_code: Optional[str] = Field(default=None, max_length=20)
    business_name: Optional[str] = Field(default=None, max_length=150)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    city: Optional[str] = Field(default=None, max_length=50)

    opening_balance: Decimal = Field(default=Decimal("0"), ge=0)
    opening_balance_type: EntryType = "credit"

    # None -> inherited from the dealer group
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    credit_days: Optional[int] = Field(default=None, ge=0, le=365)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    commission_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)


class DealerUpdate(BaseModel):
    dealer_group_id: Optional[UUID] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    business_name: Optional[str] = Field(default=None, max_length=150)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    city: Optional[str] = Field(default=None, max_length=50)
    status: Optional[Literal["active", "inactive", "suspended", "pending_approval"]] = None

    opening_balance: Optional[Decimal] = Field(default=None, ge=0)
    opening_balance_type: Optional[EntryType] = None

    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    credit_days: Optional[int] = Field(default=None, ge=0, le=365)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    commission_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)

    @field_validator(
        "dealer_group_id",
        "name",
        "status",
        "credit_limit",
        "credit_days",
        "discount_percentage",
        "commission_percentage",
    )
    @classmethod
    def _not_null(cls, v):
        # omit a field to leave it unchanged; these columns cannot be cleared
        if v is None:
            raise ValueError("must not be null")
        return v


class DealerOut(BaseModel):
    id: UUID
    tenant_id: str
    dealer_group_id: UUID
    dealer_code: str
    name: str
    business_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None

    opening_balance: Money
    opening_balance_type: str
    current_balance: Money
    balance_status: str
    credit_limit: Money
    credit_days: int
    discount_percentage: Money
    commission_percentage: Money

    status: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DealerListOut(BaseModel):
    items: List[DealerOut]
    total: int


# ---------------------------------------------------------
# Ledger
# ---------------------------------------------------------
class BalanceUpdate(BaseModel):
    amount: Decimal = Field(gt=0)
    type: EntryType
    description: Optional[str] = Field(default=None, max_length=200)


class DealerTransactionOut(BaseModel):
    id: UUID
    seq: int
    date: datetime
    type: str
    amount: Money
    description: str
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    balance_after: Money

    model_config = {"from_attributes": True}


class BalanceUpdateOut(BaseModel):
    success: bool = True
    dealer_id: UUID
    current_balance: Money
    balance_status: str
    transaction: DealerTransactionOut


class StatementLineOut(BaseModel):
    id: str
    date: datetime
    type: str
    description: str
    reference: str
    reference_type: str
    debit: Money
    credit: Money
    balance: Money
    status: str

    model_config = {"from_attributes": True}


class StatementSummaryOut(BaseModel):
    opening_balance: Money
    total_debits: Money
    total_credits: Money
    closing_balance: Money
    total_invoices: int
    pending_amount: Money

    model_config = {"from_attributes": True}


class BalanceSheetOut(BaseModel):
    dealer_id: UUID
    dealer_code: str
    name: str
    current_balance: Money
    lines: List[StatementLineOut]
    summary: StatementSummaryOut


class DealerBalanceOut(BaseModel):
    id: str
    name: str
    dealer_code: str
    current_balance: Money


class DealerStatsOut(BaseModel):
    total_dealers: int
    active_dealers: int
    inactive_dealers: int
    total_outstanding: Money
    total_advance: Money
    dealers_owing: int
    dealers_in_advance: int
    top_balances: List[DealerBalanceOut]
