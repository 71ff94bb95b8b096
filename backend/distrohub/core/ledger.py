# ============================
# FILE: distrohub/core/ledger.py
# Dealer balance arithmetic and balance-sheet reconstruction
# ============================
"""
Balance convention:
  positive balance -> dealer owes us
  negative balance -> dealer has credit (advance) with us

  debit transaction   -> balance + amount (invoice / purchase)
  credit transaction  -> balance - amount (payment received)
  opening type credit -> contributes -opening_amount
  opening type debit  -> contributes +opening_amount

Everything here is pure: persistence lives in `distrohub.crud.dealer`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from distrohub.core.dates import as_utc

CREDIT = "credit"
DEBIT = "debit"
TRANSACTION_TYPES = (CREDIT, DEBIT)

REFERENCE_TYPES = (
    "Order",
    "Payment",
    "Adjustment",
    "Opening Balance",
    "System",
    "Manual",
    "Migration",
    "Correction",
)

PENDING_ORDER_STATUSES = ("pending", "processing")

# opening entry date when the statement has no start date
STATEMENT_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_CENT = Decimal("0.01")
_ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Numeric coercion: None / "" / garbage -> 0, floats go through str()."""
    if value is None or value == "":
        return _ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return _ZERO


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def normalize_type(value: Optional[str]) -> str:
    t = (value or "").strip().lower()
    if t not in TRANSACTION_TYPES:
        raise ValueError(f"type must be one of {TRANSACTION_TYPES}, got {value!r}")
    return t


def signed_amount(amount: Any, type_: str) -> Decimal:
    amount = to_decimal(amount)
    return -amount if normalize_type(type_) == CREDIT else amount


def signed_opening(amount: Any, type_: Optional[str]) -> Decimal:
    """Signed contribution of an opening balance. Missing type counts as credit."""
    return signed_amount(amount, type_ or CREDIT)


def balance_after(balance: Any, amount: Any, type_: str) -> Decimal:
    return to_decimal(balance) + signed_amount(amount, type_)


def opening_balance_changed(old_amount: Any, old_type: Optional[str], new_amount: Any, new_type: Optional[str]) -> bool:
    return to_decimal(old_amount) != to_decimal(new_amount) or (old_type or CREDIT) != (new_type or CREDIT)


def opening_balance_delta(old_amount: Any, old_type: Optional[str], new_amount: Any, new_type: Optional[str]) -> Decimal:
    """
    Shift to apply to current_balance when the opening figure is edited.
    Transaction history is left untouched; a no-op edit yields 0.
    """
    if not opening_balance_changed(old_amount, old_type, new_amount, new_type):
        return _ZERO
    return signed_opening(new_amount, new_type) - signed_opening(old_amount, old_type)


def replay_balance(opening_amount: Any, opening_type: Optional[str], transactions: Iterable[Any]) -> Decimal:
    """opening + sum of signed transactions; what current_balance must equal."""
    total = signed_opening(opening_amount, opening_type)
    for t in transactions:
        total += signed_amount(t.amount, t.type)
    return total


# ---------------------------------------------------------
# Balance sheet
# ---------------------------------------------------------
@dataclass
class StatementLine:
    id: str
    date: datetime
    type: str  # opening | invoice | credit | payment
    description: str
    reference: str
    reference_type: str
    debit: Decimal
    credit: Decimal
    balance: Decimal = _ZERO
    status: str = "completed"


@dataclass(frozen=True)
class StatementSummary:
    opening_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    closing_balance: Decimal
    total_invoices: int
    pending_amount: Decimal


@dataclass
class Statement:
    lines: list[StatementLine] = field(default_factory=list)
    summary: Optional[StatementSummary] = None


def _range_bounds(start: Optional[date], end: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    lo = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    hi = datetime.combine(end, time.max, tzinfo=timezone.utc) if end else None
    return lo, hi


def _in_range(value: Optional[datetime], lo: Optional[datetime], hi: Optional[datetime]) -> bool:
    value = as_utc(value)
    if value is None:
        return lo is None and hi is None
    if lo is not None and value < lo:
        return False
    if hi is not None and value > hi:
        return False
    return True


def payment_already_recorded(order: Any, transactions: Iterable[Any]) -> bool:
    """
    True when the dealer log already carries this order's payment: a credit
    referencing the order for exactly the paid amount, or Order-referenced
    credits that add up to it (several partial payments).
    """
    order_id = str(order.id)
    paid = money(order.paid_amount)
    credits = [
        money(t.amount)
        for t in transactions
        if t.type == CREDIT and t.reference_type == "Order" and str(t.reference_id) == order_id
    ]
    if not credits:
        return False
    return paid in credits or sum(credits, _ZERO) == paid


def build_statement(
    opening_amount: Any,
    opening_type: Optional[str],
    transactions: Iterable[Any],
    orders: Iterable[Any] = (),
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    order_numbers: Optional[Mapping[str, str]] = None,
) -> Statement:
    """
    Rebuild a dealer statement from the stored log.

    `transactions` are ledger rows (id, seq, date, type, amount, description,
    reference_type, reference_id), `orders` are order rows (id, order_number,
    status, total, paid_amount, payment_date, created_at). Running balances are
    replayed from the signed opening balance, never copied from stored
    balance_after snapshots.
    """
    transactions = sorted(transactions, key=lambda t: (getattr(t, "seq", 0) or 0))
    orders = list(orders)
    order_numbers = dict(order_numbers or {})
    for o in orders:
        order_numbers.setdefault(str(o.id), o.order_number)

    lo, hi = _range_bounds(start, end)
    opening_type = opening_type or CREDIT
    opening = money(signed_opening(opening_amount, opening_type))

    opening_line = StatementLine(
        id="opening",
        date=lo or STATEMENT_EPOCH,
        type="opening",
        description=f"Opening Balance ({opening_type})",
        reference="System",
        reference_type="Opening Balance",
        debit=opening if opening > 0 else _ZERO,
        credit=-opening if opening < 0 else _ZERO,
        balance=opening,
    )

    entries: list[StatementLine] = []
    for t in transactions:
        if not _in_range(t.date, lo, hi):
            continue
        t_type = normalize_type(t.type)
        amount = money(t.amount)
        reference = t.reference_id or "-"
        if t.reference_type == "Order" and t.reference_id:
            reference = order_numbers.get(str(t.reference_id), reference)
        entries.append(
            StatementLine(
                id=str(t.id),
                date=as_utc(t.date),
                type="invoice" if t_type == DEBIT else CREDIT,
                description=t.description,
                reference=str(reference),
                reference_type=t.reference_type or "-",
                debit=amount if t_type == DEBIT else _ZERO,
                credit=amount if t_type == CREDIT else _ZERO,
            )
        )

    in_range_orders = [o for o in orders if _in_range(o.created_at, lo, hi)]
    for o in in_range_orders:
        paid = money(o.paid_amount)
        if paid <= 0 or payment_already_recorded(o, transactions):
            continue
        entries.append(
            StatementLine(
                id=f"{o.id}_payment",
                date=as_utc(o.payment_date or o.created_at),
                type="payment",
                description=f"Payment for #{o.order_number}",
                reference=o.order_number,
                reference_type="Payment",
                debit=_ZERO,
                credit=paid,
            )
        )

    # stable: equal dates keep log order, derived payments after log entries
    entries.sort(key=lambda line: line.date)

    running = opening
    for line in entries:
        running = running + line.debit - line.credit
        line.balance = money(running)

    total_debits = sum((line.debit for line in entries), _ZERO)
    total_credits = sum((line.credit for line in entries), _ZERO)
    pending = sum(
        (
            to_decimal(o.total) - to_decimal(o.paid_amount)
            for o in in_range_orders
            if (o.status or "").lower() in PENDING_ORDER_STATUSES
        ),
        _ZERO,
    )

    summary = StatementSummary(
        opening_balance=opening,
        total_debits=money(total_debits),
        total_credits=money(total_credits),
        closing_balance=money(running),
        total_invoices=sum(1 for line in entries if line.type == "invoice"),
        pending_amount=money(pending),
    )
    return Statement(lines=[opening_line, *entries], summary=summary)
