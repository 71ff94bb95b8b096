# backend/distrohub/api/v1/dealers.py
from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_

from distrohub.api.deps.tenant import get_repository, require_feature
from distrohub.api.v1.auth import get_current_user
from distrohub.core.errors import BusinessRuleError
from distrohub.core.tenancy import TenantContext
from distrohub.crud import dealer as dealer_crud
from distrohub.models.dealer import Dealer
from distrohub.models.user import User
from distrohub.repositories.scoped import BaseRepository
from distrohub.schemas.dealer import (
    BalanceSheetOut,
    BalanceUpdate,
    BalanceUpdateOut,
    DealerCreate,
    DealerListOut,
    DealerOut,
    DealerStatsOut,
    DealerTransactionOut,
    DealerUpdate,
    StatementLineOut,
    StatementSummaryOut,
)

router = APIRouter(prefix="/dealers", tags=["dealers"])


@router.post("", response_model=DealerOut, status_code=status.HTTP_201_CREATED)
async def create_dealer(
    payload: DealerCreate,
    repo: BaseRepository = Depends(get_repository),
    user: User = Depends(get_current_user),
):
    return await dealer_crud.create_dealer(repo, payload.model_dump(), actor_id=user.id)


@router.get("", response_model=DealerListOut)
async def list_dealers(
    search: Optional[str] = Query(default=None, max_length=100),
    dealer_group_id: Optional[uuid.UUID] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    repo: BaseRepository = Depends(get_repository),
) -> DealerListOut:
    criteria = []
    if search:
        like = f"%{search.strip()}%"
        criteria.append(
            or_(Dealer.name.ilike(like), Dealer.business_name.ilike(like), Dealer.dealer_code.ilike(like))
        )
    if dealer_group_id is not None:
        criteria.append(Dealer.dealer_group_id == dealer_group_id)
    if is_active is not None:
        criteria.append(Dealer.is_active.is_(is_active))

    total = await repo.count(Dealer, *criteria)
    dealers = await repo.list(Dealer, *criteria, order_by=(Dealer.name,), limit=limit, offset=offset)
    return DealerListOut(items=[DealerOut.model_validate(d) for d in dealers], total=total)


@router.get("/stats", response_model=DealerStatsOut)
async def get_dealer_stats(
    _ctx: TenantContext = Depends(require_feature("reporting")),
    repo: BaseRepository = Depends(get_repository),
):
    return await dealer_crud.dealer_stats(repo)


@router.get("/{dealer_id}", response_model=DealerOut)
async def get_dealer(dealer_id: uuid.UUID, repo: BaseRepository = Depends(get_repository)):
    return await dealer_crud.get_dealer(repo, dealer_id)


@router.put("/{dealer_id}", response_model=DealerOut)
async def update_dealer(
    dealer_id: uuid.UUID,
    payload: DealerUpdate,
    repo: BaseRepository = Depends(get_repository),
):
    dealer = await dealer_crud.get_dealer(repo, dealer_id)
    return await dealer_crud.update_dealer(repo, dealer, payload.model_dump(exclude_unset=True))


@router.delete("/{dealer_id}")
async def delete_dealer(dealer_id: uuid.UUID, repo: BaseRepository = Depends(get_repository)):
    dealer = await dealer_crud.get_dealer(repo, dealer_id)
    await dealer_crud.deactivate_dealer(repo, dealer)
    return {"success": True, "message": "Dealer deactivated successfully"}


@router.put("/{dealer_id}/balance", response_model=BalanceUpdateOut)
async def update_dealer_balance(
    dealer_id: uuid.UUID,
    payload: BalanceUpdate,
    repo: BaseRepository = Depends(get_repository),
    user: User = Depends(get_current_user),
) -> BalanceUpdateOut:
    dealer = await dealer_crud.get_dealer(repo, dealer_id)
    txn = await dealer_crud.apply_transaction(
        repo,
        dealer,
        payload.amount,
        payload.type,
        payload.description,
        reference_type="Manual",
        actor_id=user.id,
    )
    return BalanceUpdateOut(
        dealer_id=dealer.id,
        current_balance=dealer.current_balance,
        balance_status=dealer.balance_status,
        transaction=DealerTransactionOut.model_validate(txn),
    )


@router.get("/{dealer_id}/balance-sheet", response_model=BalanceSheetOut)
async def get_balance_sheet(
    dealer_id: uuid.UUID,
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    repo: BaseRepository = Depends(get_repository),
) -> BalanceSheetOut:
    if start_date and end_date and start_date > end_date:
        raise BusinessRuleError("start_date must not be after end_date")

    dealer = await dealer_crud.get_dealer(repo, dealer_id)
    statement = await dealer_crud.get_statement(repo, dealer, start_date, end_date)
    return BalanceSheetOut(
        dealer_id=dealer.id,
        dealer_code=dealer.dealer_code,
        name=dealer.name,
        current_balance=dealer.current_balance,
        lines=[StatementLineOut.model_validate(line) for line in statement.lines],
        summary=StatementSummaryOut.model_validate(statement.summary),
    )
