"""Data access layer for production Batch operations."""

from typing import List

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from milkpool.domain.exceptions import BatchNotFoundError, DuplicateBatchCodeError
from milkpool.domain.models import Batch


class BatchRepository:
    """Repository for batch database operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, batch: Batch) -> Batch:
        """
        Stage a new batch and assign its ID (no commit).

        Args:
            batch: Batch instance to persist

        Returns:
            The batch with its generated ID

        Raises:
            DuplicateBatchCodeError: If batch_code already exists
        """
        try:
            self.session.add(batch)
            self.session.flush()
        except IntegrityError as e:
            message = str(e.orig).lower()
            if "unique" in message or "duplicate key" in message:
                raise DuplicateBatchCodeError(batch_code=batch.batch_code) from e
            raise
        return batch

    def get_by_id(self, batch_id: int) -> Batch:
        """
        Retrieve batch by ID.

        Raises:
            BatchNotFoundError: If batch doesn't exist
        """
        batch = self.session.get(Batch, batch_id)
        if not batch:
            raise BatchNotFoundError(batch_id=batch_id)
        return batch

    def exists_with_code(self, batch_code: str) -> bool:
        statement = select(Batch.id).where(Batch.batch_code == batch_code)
        return self.session.exec(statement).first() is not None

    def list_recent(
        self,
        milk_pool_id: int | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Batch]:
        """
        List batches, most recently produced first.

        Args:
            milk_pool_id: Only batches whose inputs went into this pool
            skip: Pagination offset
            limit: Page size
        """
        statement = select(Batch)
        if milk_pool_id is not None:
            statement = statement.where(Batch.milk_pool_id == milk_pool_id)
        statement = (
            statement.order_by(
                Batch.produced_at.desc(),  # type: ignore[union-attr]
                Batch.id.desc(),  # type: ignore[union-attr]
            )
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())
