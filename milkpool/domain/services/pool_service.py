"""Pool aggregation, withdrawal and archival/reset."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from milkpool.config import settings
from milkpool.domain.exceptions import (
    InsufficientPool,
    NoActivePool,
    ValidationError,
)
from milkpool.domain.models import MilkPool, MilkUsageLog, PoolCollection
from milkpool.domain.services.unit_of_work import run_atomic
from milkpool.domain.value_objects import ZERO, QualityProfile, to_liters
from milkpool.repositories.pool_repository import PoolRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetSummary:
    """Reconciliation figures for a pool that was just archived."""

    archived_pool_id: int
    new_pool_id: int
    milk_used: Decimal
    collections_count: int
    usage_count: int
    inventory_count: int


@dataclass(frozen=True)
class PoolHealth:
    """Number of active pools, and whether that is exactly one."""

    active_pools: int

    @property
    def status(self) -> str:
        return "ok" if self.active_pools == 1 else "degraded"


class PoolService:
    """Service layer for the active milk pool and its history."""

    def __init__(self, session: Session):
        self.session = session
        self.repository = PoolRepository(session)

    # ------------------------------------------------------------------ #
    # Reads                                                                #
    # ------------------------------------------------------------------ #

    def get_pool(self, pool_id: int) -> MilkPool:
        """Retrieve a pool by ID."""
        return self.repository.get_by_id(pool_id)

    def get_active_pool(self, created_by: int | None = None) -> MilkPool:
        """Return the active pool, opening an empty one if there is none."""
        return run_atomic(
            self.session,
            lambda: self.lock_active_pool(create_if_missing=True, created_by=created_by),
            name="get_active_pool",
        )

    def list_archived_pools(self, skip: int = 0, limit: int = 100) -> List[MilkPool]:
        return self.repository.list_archived(skip=skip, limit=limit)

    def list_usage(self, pool_id: int, limit: int = 20) -> List[MilkUsageLog]:
        """List withdrawals from a pool, newest first."""
        self.repository.get_by_id(pool_id)
        return self.repository.list_usage(pool_id, limit=limit)

    def list_pool_collections(self, pool_id: int) -> List[PoolCollection]:
        """Collection history of a pool, oldest first."""
        self.repository.get_by_id(pool_id)
        return self.repository.list_links(pool_id)

    def check_pool_invariant(self) -> PoolHealth:
        """Count active pools; anything but exactly one needs an operator."""
        health = PoolHealth(active_pools=self.repository.count_active())
        if health.status != "ok":
            logger.error(
                "Active pool invariant violated",
                extra={"active_pools": health.active_pools},
            )
        return health

    # ------------------------------------------------------------------ #
    # Aggregation (call inside run_atomic)                                 #
    # ------------------------------------------------------------------ #

    def lock_active_pool(
        self,
        create_if_missing: bool = False,
        created_by: int | None = None,
    ) -> MilkPool:
        """
        Lock and return the single active pool.

        Must run inside a transaction; the lock is held until it ends.

        Raises:
            NoActivePool: No active pool (and create_if_missing is False), or
                more than one
        """
        pools = self.repository.lock_active()
        if len(pools) > 1:
            raise NoActivePool(
                f"Found {len(pools)} active milk pools; expected exactly one"
            )
        if pools:
            return pools[0]
        if not create_if_missing:
            raise NoActivePool()

        pool = self.repository.create_active(
            name=settings.default_pool_name,
            created_by=created_by,
        )
        logger.warning("Opened a new active milk pool", extra={"pool_id": pool.id})
        return pool

    def fold(self, pool: MilkPool, profile: QualityProfile) -> MilkPool:
        """
        Add milk to both the lifetime totals and the withdrawable balance.

        Raises:
            ValidationError: If the profile carries no volume
            ConcurrencyConflict: If the pool changed since it was locked
        """
        if profile.liters <= ZERO:
            raise ValidationError(f"Fold quantity must be positive, got {profile.liters}L")

        self.repository.save_balances(
            pool,
            total=pool.total_profile + profile,
            remaining=pool.remaining_profile + profile,
        )
        logger.info(
            "Folded milk into pool",
            extra={
                "pool_id": pool.id,
                "quantity_liters": profile.liters,
                "avg_fat": pool.current_avg_fat,
            },
        )
        return pool

    # ------------------------------------------------------------------ #
    # Operations                                                           #
    # ------------------------------------------------------------------ #

    def withdraw(
        self,
        quantity_liters: Decimal | float | int | str,
        pool_id: int | None = None,
        purpose: str | None = None,
        used_by: int | None = None,
    ) -> MilkUsageLog:
        """
        Take milk out of the active pool at its current average quality.

        Args:
            quantity_liters: Volume to withdraw, 0 < quantity <= remaining
            pool_id: If given, must be the active pool's ID
            purpose: Free-text reason recorded in the usage log
            used_by: User performing the withdrawal

        Returns:
            The usage log entry describing the withdrawal

        Raises:
            ValidationError: Non-positive quantity
            NoActivePool: No active pool, or pool_id is not the active pool
            InsufficientPool: Quantity exceeds the remaining balance
        """
        quantity = to_liters(quantity_liters)
        if quantity <= ZERO:
            raise ValidationError(f"Withdrawal quantity must be positive, got {quantity}L")

        def operation() -> MilkUsageLog:
            pool = self._lock_target(pool_id)
            balance = pool.remaining_profile
            if quantity > balance.liters:
                raise InsufficientPool(
                    pool_id=pool.id,
                    available=balance.liters,
                    requested=quantity,
                )

            taken, left = balance.split(quantity)
            self.repository.save_balances(pool, total=pool.total_profile, remaining=left)
            return self.repository.add_usage_log(
                MilkUsageLog(
                    milk_pool_id=pool.id,
                    used_liters=taken.liters,
                    used_fat_units=taken.fat_units,
                    used_snf_units=taken.snf_units,
                    remaining_liters_after=left.liters,
                    remaining_fat_units_after=left.fat_units,
                    remaining_snf_units_after=left.snf_units,
                    purpose=purpose,
                    used_by=used_by,
                )
            )

        log = run_atomic(self.session, operation, name="withdraw")
        logger.info(
            "Withdrew milk from pool",
            extra={
                "pool_id": log.milk_pool_id,
                "quantity_liters": log.used_liters,
                "remaining_liters": log.remaining_liters_after,
            },
        )
        return log

    def reset_pool(self, pool_id: int, acting_user: int | None = None) -> ResetSummary:
        """
        Archive the active pool and open a fresh empty one in one transaction.

        Either both the archive and the new pool commit, or neither does, so
        the ledger never ends up with zero active pools.

        Raises:
            NoActivePool: pool_id is not the single active pool
        """

        def operation() -> ResetSummary:
            pool = self._lock_target(pool_id)
            # Counted under the lock so they match what gets archived
            collections_count = self._safe_count(self.repository.count_links, pool.id)
            usage_count = self._safe_count(self.repository.count_usage, pool.id)
            inventory_count = self._safe_count(self.repository.count_batches, pool.id)
            milk_used = pool.milk_used

            self.repository.archive(pool)
            fresh = self.repository.create_active(
                name=settings.default_pool_name,
                created_by=acting_user,
            )
            return ResetSummary(
                archived_pool_id=pool.id,
                new_pool_id=fresh.id,
                milk_used=milk_used,
                collections_count=collections_count,
                usage_count=usage_count,
                inventory_count=inventory_count,
            )

        summary = run_atomic(self.session, operation, name="reset_pool")
        logger.info(
            "Milk pool reset",
            extra={
                "pool_id": summary.archived_pool_id,
                "new_pool_id": summary.new_pool_id,
                "milk_used": summary.milk_used,
            },
        )
        return summary

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _lock_target(self, pool_id: int | None) -> MilkPool:
        pool = self.lock_active_pool()
        if pool_id is not None and pool.id != pool_id:
            raise NoActivePool(f"Milk pool {pool_id} is not the active pool", pool_id=pool_id)
        return pool

    def _safe_count(self, query: Callable[[int], int], pool_id: int) -> int:
        """Run an informational count in a savepoint, reporting 0 if it fails."""
        try:
            with self.session.begin_nested():
                return query(pool_id)
        except SQLAlchemyError:
            logger.warning(
                "Count for pool reset summary failed; reporting 0",
                extra={"pool_id": pool_id},
                exc_info=True,
            )
            return 0
