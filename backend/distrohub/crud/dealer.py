# backend/distrohub/crud/dealer.py
"""
Dealer persistence and the ledger write path.

current_balance is moved in exactly two places:
  - record_transaction / apply_transaction: SQL-side increment + log append
  - update_dealer: shift by the change of the signed opening balance
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from distrohub.core.dates import utcnow
from distrohub.core.errors import (
    BusinessRuleError,
    ConflictError,
    LedgerConsistencyError,
    ResourceNotFound,
)
from distrohub.core.ledger import (
    CREDIT,
    Statement,
    build_statement,
    money,
    normalize_type,
    opening_balance_changed,
    opening_balance_delta,
    signed_amount,
    signed_opening,
)
from distrohub.models.dealer import Dealer, DealerTransaction
from distrohub.models.dealer_group import DealerGroup
from distrohub.models.order import Order
from distrohub.repositories.scoped import BaseRepository

logger = logging.getLogger(__name__)

# fields a dealer inherits from its group when not given explicitly
INHERITED_FROM_GROUP = ("credit_limit", "credit_days", "discount_percentage", "commission_percentage")


# -----------------------------
# Sequential codes
# -----------------------------
async def next_sequential_code(repo: BaseRepository, column: Any, prefix: str, width: int) -> str:
    """
    `prefix` + zero-padded (last sequence under that prefix + 1), per tenant.
    Like the tenant id allocator, the read and the caller's insert are not
    atomic; the per-tenant unique constraint rejects a lost race.
    """
    model = column.class_
    stmt = (
        select(column)
        .where(*repo.criteria(model), column.like(f"{prefix}%"))
        .order_by(column.desc())
        .limit(1)
    )
    last = (await repo.db.execute(stmt)).scalar_one_or_none()

    sequence = 1
    if last:
        tail = last[len(prefix):]
        if tail.isdigit():
            sequence = int(tail) + 1
    return f"{prefix}{str(sequence).zfill(width)}"


def dealer_code_prefix(today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    return f"DLR{today:%y%m}"


# -----------------------------
# Dealer groups
# -----------------------------
async def create_dealer_group(repo: BaseRepository, data: dict[str, Any]) -> DealerGroup:
    group = DealerGroup(**data)
    group.code = (group.code or "").strip().upper()
    repo.add(group)
    try:
        await repo.db.commit()
    except IntegrityError:
        await repo.db.rollback()
        raise ConflictError("Dealer group with this name or code already exists", field="code")
    await repo.db.refresh(group)
    return group


# -----------------------------
# Dealers
# -----------------------------
async def get_dealer(repo: BaseRepository, dealer_id: uuid.UUID) -> Dealer:
    dealer = await repo.get(Dealer, dealer_id)
    if dealer is None:
        raise ResourceNotFound("Dealer not found")
    return dealer


def apply_group_defaults(data: dict[str, Any], group: DealerGroup) -> dict[str, Any]:
    """Fill missing financial terms from the dealer group."""
    out = dict(data)
    for attr in INHERITED_FROM_GROUP:
        if out.get(attr) is None:
            out[attr] = getattr(group, attr)
    return out


async def create_dealer(repo: BaseRepository, data: dict[str, Any], actor_id: Optional[uuid.UUID] = None) -> Dealer:
    group = await repo.get(DealerGroup, data.get("dealer_group_id"))
    if group is None or (repo.tenant_id and group.tenant_id != repo.tenant_id):
        raise ResourceNotFound("Dealer group not found")

    data = apply_group_defaults(data, group)
    opening_amount = money(data.pop("opening_balance", None))
    opening_type = normalize_type(data.pop("opening_balance_type", None) or CREDIT)

    dealer = Dealer(
        **data,
        opening_balance=opening_amount,
        opening_balance_type=opening_type,
        current_balance=signed_opening(opening_amount, opening_type),
        created_by_id=actor_id,
    )
    # a dealer lives in its group's tenant
    dealer.tenant_id = group.tenant_id

    if dealer.dealer_code:
        dealer.dealer_code = dealer.dealer_code.strip().upper()
    else:
        dealer.dealer_code = await next_sequential_code(
            repo, Dealer.dealer_code, dealer_code_prefix(), 3
        )

    repo.add(dealer)
    try:
        await repo.db.commit()
    except IntegrityError:
        await repo.db.rollback()
        raise ConflictError("Dealer with this code already exists", field="dealer_code")

    await repo.db.refresh(dealer)
    logger.info(
        f"Dealer created tenant={dealer.tenant_id} dealer={dealer.id} "
        f"opening={opening_amount} {opening_type}"
    )
    return dealer


async def update_dealer(repo: BaseRepository, dealer: Dealer, changes: dict[str, Any]) -> Dealer:
    """
    Plain field updates plus the opening-balance edit. current_balance is never
    taken from the caller; an opening edit shifts it by the signed difference
    and leaves the transaction log alone.
    """
    changes = dict(changes)
    changes.pop("current_balance", None)
    new_amount = changes.pop("opening_balance", None)
    new_type = changes.pop("opening_balance_type", None)

    if "dealer_group_id" in changes:
        group = await repo.get(DealerGroup, changes["dealer_group_id"])
        if group is None or group.tenant_id != dealer.tenant_id:
            raise ResourceNotFound("Dealer group not found")

    for attr, value in changes.items():
        setattr(dealer, attr, value)

    old_amount, old_type = dealer.opening_balance, dealer.opening_balance_type
    target_amount = money(new_amount) if new_amount is not None else old_amount
    target_type = normalize_type(new_type) if new_type is not None else old_type
    delta = opening_balance_delta(old_amount, old_type, target_amount, target_type)

    try:
        if opening_balance_changed(old_amount, old_type, target_amount, target_type):
            stmt = (
                repo.update(Dealer, Dealer.id == dealer.id, Dealer.tenant_id == dealer.tenant_id)
                .values(
                    opening_balance=target_amount,
                    opening_balance_type=target_type,
                    current_balance=Dealer.current_balance + delta,
                )
                .execution_options(synchronize_session=False)
            )
            res = await repo.db.execute(stmt)
            if res.rowcount != 1:
                raise LedgerConsistencyError("Dealer balance update matched no row")
            logger.info(
                f"Opening balance edited tenant={dealer.tenant_id} dealer={dealer.id} "
                f"{old_amount} {old_type} -> {target_amount} {target_type} delta={delta}"
            )
        await repo.db.commit()
    except IntegrityError:
        await repo.db.rollback()
        logger.warning(f"Dealer update rejected by the database tenant={dealer.tenant_id} dealer={dealer.id}")
        raise ConflictError("Dealer update conflicts with existing data")
    except Exception:
        await repo.db.rollback()
        raise

    await repo.db.refresh(dealer)
    return dealer


async def deactivate_dealer(repo: BaseRepository, dealer: Dealer) -> Dealer:
    balance = money(dealer.current_balance)
    if balance != 0:
        raise BusinessRuleError(f"Cannot delete dealer with outstanding balance of ₹{abs(balance)}")
    dealer.is_active = False
    dealer.status = "inactive"
    await repo.db.commit()
    await repo.db.refresh(dealer)
    return dealer


# -----------------------------
# Ledger
# -----------------------------
async def record_transaction(
    repo: BaseRepository,
    dealer: Dealer,
    amount: Any,
    type_: str,
    description: str,
    *,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
    when: Optional[datetime] = None,
) -> DealerTransaction:
    """
    Balance increment + log append inside the caller's DB transaction.
    Does not commit: see apply_transaction, or commit alongside other writes
    (order creation, order payment).
    """
    t = normalize_type(type_)
    amount = money(amount)
    if amount <= 0:
        raise BusinessRuleError("Amount must be greater than 0")

    stmt = (
        repo.update(Dealer, Dealer.id == dealer.id, Dealer.tenant_id == dealer.tenant_id)
        .values(current_balance=Dealer.current_balance + signed_amount(amount, t))
        .execution_options(synchronize_session=False)
    )
    res = await repo.db.execute(stmt)
    if res.rowcount != 1:
        raise LedgerConsistencyError("Dealer balance update matched no row")

    new_balance = (
        await repo.db.execute(select(Dealer.current_balance).where(Dealer.id == dealer.id))
    ).scalar_one()
    last_seq = (
        await repo.db.execute(
            select(func.coalesce(func.max(DealerTransaction.seq), 0)).where(
                DealerTransaction.dealer_id == dealer.id
            )
        )
    ).scalar_one()

    txn = DealerTransaction(
        tenant_id=dealer.tenant_id,
        dealer_id=dealer.id,
        seq=int(last_seq) + 1,
        date=when or utcnow(),
        type=t,
        amount=amount,
        description=description,
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        balance_after=money(new_balance),
        created_by_id=actor_id,
    )
    repo.add(txn)
    await repo.db.flush()

    logger.info(
        f"Ledger {t} tenant={dealer.tenant_id} dealer={dealer.id} "
        f"amount={amount} balance_after={txn.balance_after}"
    )
    return txn


async def apply_transaction(
    repo: BaseRepository,
    dealer: Dealer,
    amount: Any,
    type_: str,
    description: Optional[str] = None,
    *,
    reference_type: Optional[str] = "Manual",
    reference_id: Optional[str] = None,
    actor_id: Optional[uuid.UUID] = None,
) -> DealerTransaction:
    """One credit/debit against a dealer, committed as a single unit."""
    description = description or f"Balance {normalize_type(type_)} of ₹{money(amount)}"
    try:
        txn = await record_transaction(
            repo,
            dealer,
            amount,
            type_,
            description,
            reference_type=reference_type,
            reference_id=reference_id,
            actor_id=actor_id,
        )
        await repo.db.commit()
    except Exception:
        await repo.db.rollback()
        raise

    await repo.db.refresh(dealer)
    return txn


async def list_transactions(repo: BaseRepository, dealer: Dealer) -> list[DealerTransaction]:
    return await repo.list(
        DealerTransaction,
        DealerTransaction.dealer_id == dealer.id,
        order_by=(DealerTransaction.seq,),
    )


async def get_statement(
    repo: BaseRepository,
    dealer: Dealer,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Statement:
    transactions = await list_transactions(repo, dealer)
    orders = await repo.list(Order, Order.dealer_id == dealer.id, order_by=(Order.created_at,))

    # orders referenced by the log but created outside the requested range
    order_numbers: dict[str, str] = {}
    ref_ids = {t.reference_id for t in transactions if t.reference_type == "Order" and t.reference_id}
    known = {str(o.id) for o in orders}
    missing = []
    for ref in ref_ids - known:
        try:
            missing.append(uuid.UUID(ref))
        except ValueError:
            continue
    if missing:
        for o in await repo.list(Order, Order.id.in_(missing)):
            order_numbers[str(o.id)] = o.order_number

    return build_statement(
        dealer.opening_balance,
        dealer.opening_balance_type,
        transactions,
        orders,
        start=start,
        end=end,
        order_numbers=order_numbers,
    )


async def dealer_stats(repo: BaseRepository) -> dict[str, Any]:
    dealers = await repo.list(Dealer)
    owing = [money(d.current_balance) for d in dealers if money(d.current_balance) > 0]
    advance = [money(d.current_balance) for d in dealers if money(d.current_balance) < 0]
    active = sum(1 for d in dealers if d.is_active)
    top = sorted(dealers, key=lambda d: money(d.current_balance), reverse=True)[:5]
    return {
        "total_dealers": len(dealers),
        "active_dealers": active,
        "inactive_dealers": len(dealers) - active,
        "total_outstanding": sum(owing, Decimal("0")),
        "total_advance": abs(sum(advance, Decimal("0"))),
        "dealers_owing": len(owing),
        "dealers_in_advance": len(advance),
        "top_balances": [
            {"id": str(d.id), "name": d.name, "dealer_code": d.dealer_code, "current_balance": money(d.current_balance)}
            for d in top
            if money(d.current_balance) > 0
        ],
    }
