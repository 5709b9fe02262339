"""Business logic layer for production batch operations."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Sequence

from sqlmodel import Session

from milkpool.config import settings
from milkpool.domain.exceptions import (
    ConcurrencyConflict,
    DuplicateBatchCodeError,
    InvalidCollectionState,
    ValidationError,
)
from milkpool.domain.models import Batch, CollectionEntry, ConsumptionStatus, QcStatus
from milkpool.domain.services.pool_service import PoolService
from milkpool.domain.services.unit_of_work import run_atomic
from milkpool.domain.value_objects import ZERO, BatchCode, QualityProfile, to_liters
from milkpool.repositories.batch_repository import BatchRepository
from milkpool.repositories.collection_repository import CollectionRepository

logger = logging.getLogger(__name__)


def _state_problem(entry: CollectionEntry | None) -> str | None:
    if entry is None:
        return "not found"
    if entry.qc_status != QcStatus.APPROVED.value:
        return f"qc_status is {entry.qc_status}"
    if entry.consumption_status != ConsumptionStatus.NEW.value:
        return f"consumption_status is {entry.consumption_status}"
    return None


class BatchService:
    """Service layer for batch business logic."""

    def __init__(self, session: Session):
        self.session = session
        self.repository = BatchRepository(session)
        self.collections = CollectionRepository(session)
        self.pools = PoolService(session)

    def create_batch(
        self,
        created_by: int,
        collection_ids: Sequence[int],
        product_id: int,
        yield_quantity: Decimal | float | int | str,
        batch_code: str | None = None,
        expiry_date: date | None = None,
    ) -> Batch:
        """
        Turn approved, unconsumed collections into a production batch.

        Folds the collections into the active pool, records the batch and
        marks every collection used_in_batch, all in one transaction.

        Args:
            created_by: User creating the batch
            collection_ids: Input collections, in order; at least one
            product_id: Finished product reference
            yield_quantity: Produced quantity, > 0
            batch_code: Human-readable code; generated when omitted
            expiry_date: Optional expiry date of the finished product

        Returns:
            Created batch

        Raises:
            ValidationError: Empty or duplicated ids, non-positive yield,
                malformed batch code
            InvalidCollectionState: Any collection missing, not approved or
                already used
            DuplicateBatchCodeError: batch_code already exists
        """
        ids = list(collection_ids)
        if not ids:
            raise ValidationError("At least one collection is required")
        duplicates = sorted({cid for cid in ids if ids.count(cid) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate collection ids: {duplicates}")

        quantity = to_liters(yield_quantity)
        if quantity <= ZERO:
            raise ValidationError(f"Yield must be positive, got {quantity}")

        try:
            code = BatchCode(batch_code) if batch_code else None
        except ValueError as e:
            raise ValidationError(str(e)) from e

        def operation() -> Batch:
            entries = self.collections.lock_many(ids)
            problems = {}
            for cid in ids:
                problem = _state_problem(entries.get(cid))
                if problem is not None:
                    problems[cid] = problem
            if problems:
                raise InvalidCollectionState(problems)

            resolved_code = code or BatchCode.generate(prefix=settings.batch_code_prefix)
            if self.repository.exists_with_code(resolved_code.value):
                raise DuplicateBatchCodeError(batch_code=resolved_code.value)

            ordered = [entries[cid] for cid in ids]
            combined = sum((entry.profile for entry in ordered), QualityProfile.empty())

            pool = self.pools.lock_active_pool(create_if_missing=True, created_by=created_by)
            # Zero-volume collections carry no mass; they are still consumed.
            if not combined.is_empty:
                self.pools.fold(pool, combined)

            batch = self.repository.add(
                Batch(
                    batch_code=resolved_code.value,
                    product_id=product_id,
                    created_by=created_by,
                    milk_pool_id=pool.id,
                    yield_quantity=quantity,
                    expiry_date=expiry_date,
                )
            )
            self.pools.repository.link_collections(pool, batch, ordered, added_by=created_by)

            if self.collections.mark_used_in_batch(ids) != len(ids):
                raise ConcurrencyConflict("Collections changed while creating the batch")
            return batch

        batch = run_atomic(self.session, operation, name="create_batch")
        logger.info(
            "Batch created",
            extra={
                "batch_id": batch.id,
                "batch_code": batch.batch_code,
                "pool_id": batch.milk_pool_id,
                "collection_ids": ids,
            },
        )
        return batch

    def get_batch(self, batch_id: int) -> Batch:
        """Retrieve batch by ID."""
        return self.repository.get_by_id(batch_id)

    def list_batches(
        self,
        milk_pool_id: int | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Batch]:
        """List batches with pagination, newest first."""
        return self.repository.list_recent(milk_pool_id=milk_pool_id, skip=skip, limit=limit)
