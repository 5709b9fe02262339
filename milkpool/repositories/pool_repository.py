"""Data access layer for milk pools, their collection links and usage log."""

from datetime import datetime, timezone
from typing import List, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select, update

from milkpool.domain.exceptions import ConcurrencyConflict, PoolNotFoundError
from milkpool.domain.models import (
    Batch,
    CollectionEntry,
    MilkPool,
    MilkUsageLog,
    PoolCollection,
    PoolStatus,
)
from milkpool.domain.value_objects import QualityProfile


class PoolRepository:
    """Repository for milk pool database operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, pool_id: int) -> MilkPool:
        """
        Retrieve a pool by ID, active or archived.

        Raises:
            PoolNotFoundError: If the pool doesn't exist
        """
        pool = self.session.get(MilkPool, pool_id)
        if not pool:
            raise PoolNotFoundError(pool_id=pool_id)
        return pool

    def lock_active(self) -> List[MilkPool]:
        """
        Load every active pool with SELECT FOR UPDATE.

        More than one row means the single-active invariant is broken; the
        caller decides how to report it.
        """
        statement = (
            select(MilkPool)
            .where(MilkPool.status == PoolStatus.ACTIVE.value)
            .order_by(MilkPool.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(self.session.exec(statement).all())

    def count_active(self) -> int:
        statement = (
            select(func.count())
            .select_from(MilkPool)
            .where(MilkPool.status == PoolStatus.ACTIVE.value)
        )
        return self.session.exec(statement).one()

    def create_active(self, name: str, created_by: int | None = None) -> MilkPool:
        """
        Insert a fresh, empty, active pool (no commit).

        Raises:
            ConcurrencyConflict: Another active pool was created concurrently
        """
        pool = MilkPool(name=name, created_by=created_by)
        try:
            self.session.add(pool)
            self.session.flush()
        except IntegrityError as e:
            raise ConcurrencyConflict("Another active milk pool already exists") from e
        return pool

    def save_balances(
        self,
        pool: MilkPool,
        total: QualityProfile,
        remaining: QualityProfile,
    ) -> MilkPool:
        """
        Write new balances only if the pool is unchanged since it was read.

        Raises:
            ConcurrencyConflict: The pool's version moved or it was archived
        """
        statement = (
            update(MilkPool)
            .where(
                MilkPool.id == pool.id,
                MilkPool.version == pool.version,
                MilkPool.status == PoolStatus.ACTIVE.value,
            )
            .values(
                total_milk_liters=total.liters,
                total_fat_units=total.fat_units,
                total_snf_units=total.snf_units,
                remaining_milk_liters=remaining.liters,
                remaining_fat_units=remaining.fat_units,
                remaining_snf_units=remaining.snf_units,
                version=MilkPool.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        result = self.session.exec(statement)
        if result.rowcount != 1:
            raise ConcurrencyConflict(f"Milk pool {pool.id} changed during update")
        return pool

    def archive(self, pool: MilkPool) -> MilkPool:
        """
        Flip an active pool to archived, leaving every balance as it is.

        Raises:
            ConcurrencyConflict: The pool's version moved or it is not active
        """
        statement = (
            update(MilkPool)
            .where(
                MilkPool.id == pool.id,
                MilkPool.version == pool.version,
                MilkPool.status == PoolStatus.ACTIVE.value,
            )
            .values(
                status=PoolStatus.ARCHIVED.value,
                version=MilkPool.version + 1,
            )
        )
        result = self.session.exec(statement)
        if result.rowcount != 1:
            raise ConcurrencyConflict(f"Milk pool {pool.id} changed before archiving")
        self.session.flush()
        return pool

    def link_collections(
        self,
        pool: MilkPool,
        batch: Batch,
        entries: Sequence[CollectionEntry],
        added_by: int | None = None,
    ) -> List[PoolCollection]:
        """Record which collections were folded into ``pool`` for ``batch``, in order."""
        links = []
        for position, entry in enumerate(entries):
            profile = entry.profile
            link = PoolCollection(
                milk_pool_id=pool.id,
                collection_id=entry.id,
                batch_id=batch.id,
                position=position,
                quantity_liters=profile.liters,
                fat_units=profile.fat_units,
                snf_units=profile.snf_units,
                added_by=added_by,
            )
            self.session.add(link)
            links.append(link)
        self.session.flush()
        return links

    def add_usage_log(self, log: MilkUsageLog) -> MilkUsageLog:
        self.session.add(log)
        self.session.flush()
        return log

    def list_usage(self, pool_id: int, limit: int = 20) -> List[MilkUsageLog]:
        """List a pool's withdrawals, newest first."""
        statement = (
            select(MilkUsageLog)
            .where(MilkUsageLog.milk_pool_id == pool_id)
            .order_by(
                MilkUsageLog.used_at.desc(),  # type: ignore[union-attr]
                MilkUsageLog.id.desc(),  # type: ignore[union-attr]
            )
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def list_links(self, pool_id: int) -> List[PoolCollection]:
        """List the collections folded into a pool, in the order they were added."""
        statement = (
            select(PoolCollection)
            .where(PoolCollection.milk_pool_id == pool_id)
            .order_by(PoolCollection.added_at, PoolCollection.id)
        )
        return list(self.session.exec(statement).all())

    def list_archived(self, skip: int = 0, limit: int = 100) -> List[MilkPool]:
        """List archived pools, most recently created first."""
        statement = (
            select(MilkPool)
            .where(MilkPool.status == PoolStatus.ARCHIVED.value)
            .order_by(MilkPool.id.desc())  # type: ignore[union-attr]
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def count_links(self, pool_id: int) -> int:
        return self._count(PoolCollection, PoolCollection.milk_pool_id == pool_id)

    def count_usage(self, pool_id: int) -> int:
        return self._count(MilkUsageLog, MilkUsageLog.milk_pool_id == pool_id)

    def count_batches(self, pool_id: int) -> int:
        return self._count(Batch, Batch.milk_pool_id == pool_id)

    def _count(self, model: type, condition: object) -> int:
        statement = select(func.count()).select_from(model).where(condition)
        return self.session.exec(statement).one()

