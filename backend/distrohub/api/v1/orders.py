# backend/distrohub/api/v1/orders.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from distrohub.api.deps.tenant import get_repository, require_limit
from distrohub.api.v1.auth import get_current_user
from distrohub.core.tenancy import TenantContext
from distrohub.crud import order as order_crud
from distrohub.models.user import User
from distrohub.repositories.scoped import BaseRepository
from distrohub.schemas.dealer import DealerTransactionOut
from distrohub.schemas.order import OrderCreate, OrderLedgerOut, OrderListOut, OrderOut, PaymentCreate

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderLedgerOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    _ctx: TenantContext = Depends(require_limit("orders")),
    repo: BaseRepository = Depends(get_repository),
    user: User = Depends(get_current_user),
) -> OrderLedgerOut:
    order, dealer, txn = await order_crud.create_order(
        repo,
        dealer_id=payload.dealer_id,
        total=payload.total,
        status=payload.status,
        actor_id=user.id,
    )
    return OrderLedgerOut(
        order=OrderOut.model_validate(order),
        current_balance=dealer.current_balance,
        transaction=DealerTransactionOut.model_validate(txn),
    )


@router.post("/{order_id}/payments", response_model=OrderLedgerOut)
async def record_order_payment(
    order_id: uuid.UUID,
    payload: PaymentCreate,
    repo: BaseRepository = Depends(get_repository),
    user: User = Depends(get_current_user),
) -> OrderLedgerOut:
    order = await order_crud.get_order(repo, order_id)
    order, dealer, txn = await order_crud.record_payment(repo, order, payload.amount, actor_id=user.id)
    return OrderLedgerOut(
        order=OrderOut.model_validate(order),
        current_balance=dealer.current_balance,
        transaction=DealerTransactionOut.model_validate(txn),
    )


@router.get("", response_model=OrderListOut)
async def list_orders(
    dealer_id: Optional[uuid.UUID] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    repo: BaseRepository = Depends(get_repository),
) -> OrderListOut:
    orders, total = await order_crud.list_orders(
        repo, dealer_id=dealer_id, status=status_filter, limit=limit, offset=offset
    )
    return OrderListOut(items=[OrderOut.model_validate(o) for o in orders], total=total)
