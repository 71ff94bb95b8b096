"""
Tenant-scoped data access.

Business code never builds tenant filters by hand. It gets a repository for the
resolved TenantContext:

    repo = repository_for(db, ctx)
    dealer = await repo.get(Dealer, dealer_id)

- TenantScopedRepository: every select/update/count carries tenant_id == ctx.id,
  every added object is stamped with ctx.id.
- UnscopedRepository: super admins only; no read criteria.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, TypeVar

from sqlalchemy import Select, Update, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from distrohub.core.errors import MissingTenantId, TenantAccessDenied
from distrohub.core.roles import is_super_admin
from distrohub.core.tenancy import TenantContext

ModelT = TypeVar("ModelT")


class BaseRepository(ABC):
    def __init__(self, db: AsyncSession, context: Optional[TenantContext], tenant_filter: dict[str, str]):
        self.db = db
        self.context = context
        self._filter = dict(tenant_filter)

    @property
    def tenant_id(self) -> Optional[str]:
        return self.context.id if self.context else None

    @property
    def is_scoped(self) -> bool:
        return bool(self._filter)

    def criteria(self, model: Any) -> list[Any]:
        return [getattr(model, column) == value for column, value in self._filter.items()]

    # -----------------------------
    # Reads
    # -----------------------------
    def select(self, model: type[ModelT], *criteria: Any) -> Select:
        return select(model).where(*self.criteria(model), *criteria)

    async def get(self, model: type[ModelT], obj_id: Any) -> Optional[ModelT]:
        res = await self.db.execute(self.select(model, model.id == obj_id))
        return res.scalar_one_or_none()

    async def first(self, model: type[ModelT], *criteria: Any, order_by: Sequence[Any] = ()) -> Optional[ModelT]:
        stmt = self.select(model, *criteria).order_by(*order_by).limit(1)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def list(
        self,
        model: type[ModelT],
        *criteria: Any,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[ModelT]:
        stmt = self.select(model, *criteria).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def count(self, model: Any, *criteria: Any) -> int:
        stmt = select(func.count(model.id)).where(*self.criteria(model), *criteria)
        res = await self.db.execute(stmt)
        return int(res.scalar() or 0)

    # -----------------------------
    # Writes
    # -----------------------------
    def update(self, model: Any, *criteria: Any) -> Update:
        """UPDATE statement pre-filtered to this repository's tenant."""
        return update(model).where(*self.criteria(model), *criteria)

    @abstractmethod
    def add(self, obj: ModelT) -> ModelT:
        """Stage `obj` for insert with its tenant_id settled."""


class TenantScopedRepository(BaseRepository):
    def __init__(self, db: AsyncSession, context: TenantContext):
        if context is None:
            raise MissingTenantId()
        tenant_filter = context.filter
        if not tenant_filter:
            raise ValueError("TenantScopedRepository needs a tenant-bound context; use repository_for()")
        super().__init__(db, context, tenant_filter)

    def add(self, obj: ModelT) -> ModelT:
        current = getattr(obj, "tenant_id", None)
        if current and current != self.context.id:
            raise TenantAccessDenied("Cannot write a record that belongs to another company")
        obj.tenant_id = self.context.id
        self.db.add(obj)
        return obj


class UnscopedRepository(BaseRepository):
    def __init__(self, db: AsyncSession, context: Optional[TenantContext] = None):
        super().__init__(db, context, {})

    @classmethod
    def for_actor(
        cls,
        db: AsyncSession,
        actor: Any,
        context: Optional[TenantContext] = None,
    ) -> "UnscopedRepository":
        if not is_super_admin(actor):
            raise TenantAccessDenied("Super admin access required")
        return cls(db, context)

    def add(self, obj: ModelT) -> ModelT:
        if not getattr(obj, "tenant_id", None):
            if not self.tenant_id:
                raise MissingTenantId()
            obj.tenant_id = self.tenant_id
        self.db.add(obj)
        return obj


def repository_for(db: AsyncSession, context: TenantContext) -> BaseRepository:
    if context.is_super_admin:
        return UnscopedRepository.for_actor(db, context.actor, context)
    return TenantScopedRepository(db, context)
