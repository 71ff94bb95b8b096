# backend/distrohub/crud/order.py
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from distrohub.core.dates import utcnow
from distrohub.core.errors import BusinessRuleError, ConflictError, ResourceNotFound
from distrohub.core.ledger import CREDIT, DEBIT, money
from distrohub.crud.company import increment_stat
from distrohub.crud.dealer import get_dealer, next_sequential_code, record_transaction
from distrohub.models.dealer import Dealer, DealerTransaction
from distrohub.models.order import Order
from distrohub.repositories.scoped import BaseRepository

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "processing", "confirmed", "delivered", "cancelled")


def order_number_prefix(today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    return f"ORD{today:%y%m%d}"


async def get_order(repo: BaseRepository, order_id: uuid.UUID) -> Order:
    order = await repo.get(Order, order_id)
    if order is None:
        raise ResourceNotFound("Order not found")
    return order


async def create_order(
    repo: BaseRepository,
    *,
    dealer_id: uuid.UUID,
    total: Any,
    status: str = "pending",
    actor_id: Optional[uuid.UUID] = None,
) -> tuple[Order, Dealer, DealerTransaction]:
    """
    Order row + dealer debit (reference Order) + total_orders bump, one commit.
    """
    dealer = await get_dealer(repo, dealer_id)
    if not dealer.is_active:
        raise BusinessRuleError("Dealer is inactive")

    total = money(total)
    if total <= 0:
        raise BusinessRuleError("Order total must be greater than 0")
    if status not in ORDER_STATUSES:
        raise BusinessRuleError(f"Unknown order status {status!r}")

    order = Order(
        tenant_id=dealer.tenant_id,
        dealer_id=dealer.id,
        order_number=await next_sequential_code(repo, Order.order_number, order_number_prefix(), 4),
        status=status,
        total=total,
        paid_amount=money(0),
        created_by_id=actor_id,
        created_at=utcnow(),
    )

    try:
        repo.add(order)
        await repo.db.flush()
        txn = await record_transaction(
            repo,
            dealer,
            total,
            DEBIT,
            f"Order #{order.order_number}",
            reference_type="Order",
            reference_id=str(order.id),
            actor_id=actor_id,
            when=order.created_at,
        )
        await increment_stat(repo.db, dealer.tenant_id, "orders")
        await repo.db.commit()
    except IntegrityError:
        await repo.db.rollback()
        raise ConflictError("Order number already taken, please retry", field="order_number")
    except Exception:
        await repo.db.rollback()
        raise

    await repo.db.refresh(order)
    await repo.db.refresh(dealer)
    logger.info(f"Order {order.order_number} created tenant={order.tenant_id} total={total}")
    return order, dealer, txn


async def record_payment(
    repo: BaseRepository,
    order: Order,
    amount: Any,
    *,
    actor_id: Optional[uuid.UUID] = None,
) -> tuple[Order, Dealer, DealerTransaction]:
    """Credit the dealer (reference Order), raise paid_amount. Overpayment is refused."""
    amount = money(amount)
    if amount <= 0:
        raise BusinessRuleError("Amount must be greater than 0")
    if order.status == "cancelled":
        raise BusinessRuleError("Cannot record a payment for a cancelled order")

    outstanding = money(order.total) - money(order.paid_amount)
    if amount > outstanding:
        raise BusinessRuleError(f"Payment of ₹{amount} exceeds outstanding amount of ₹{outstanding}")

    dealer = await get_dealer(repo, order.dealer_id)
    now = utcnow()
    try:
        txn = await record_transaction(
            repo,
            dealer,
            amount,
            CREDIT,
            f"Payment for #{order.order_number}",
            reference_type="Order",
            reference_id=str(order.id),
            actor_id=actor_id,
            when=now,
        )
        order.paid_amount = money(order.paid_amount) + amount
        order.payment_date = now
        await repo.db.commit()
    except Exception:
        await repo.db.rollback()
        raise

    await repo.db.refresh(order)
    await repo.db.refresh(dealer)
    return order, dealer, txn


async def list_orders(
    repo: BaseRepository,
    *,
    dealer_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Order], int]:
    criteria = []
    if dealer_id is not None:
        criteria.append(Order.dealer_id == dealer_id)
    if status:
        criteria.append(Order.status == status)
    total = await repo.count(Order, *criteria)
    orders = await repo.list(Order, *criteria, order_by=(Order.created_at.desc(),), limit=limit, offset=offset)
    return orders, total
