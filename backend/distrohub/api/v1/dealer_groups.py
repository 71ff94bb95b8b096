# backend/distrohub/api/v1/dealer_groups.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from distrohub.api.deps.tenant import get_repository
from distrohub.crud.dealer import create_dealer_group
from distrohub.models.dealer_group import DealerGroup
from distrohub.repositories.scoped import BaseRepository
from distrohub.schemas.dealer import DealerGroupCreate, DealerGroupOut

router = APIRouter(prefix="/dealer-groups", tags=["dealer-groups"])


@router.post("", response_model=DealerGroupOut, status_code=status.HTTP_201_CREATED)
async def create_group(payload: DealerGroupCreate, repo: BaseRepository = Depends(get_repository)):
    return await create_dealer_group(repo, payload.model_dump())


@router.get("", response_model=List[DealerGroupOut])
async def list_groups(
    active_only: bool = Query(default=False),
    repo: BaseRepository = Depends(get_repository),
):
    criteria = [DealerGroup.is_active.is_(True)] if active_only else []
    return await repo.list(DealerGroup, *criteria, order_by=(DealerGroup.name,))
