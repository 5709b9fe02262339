"""Data access layer for the milk collection ledger."""

from datetime import datetime, timezone
from typing import Iterable, List

from sqlmodel import Session, select, update

from milkpool.domain.exceptions import CollectionNotFoundError
from milkpool.domain.models import CollectionEntry, ConsumptionStatus, QcStatus


class CollectionRepository:
    """Repository for collection entry database operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, entry: CollectionEntry) -> CollectionEntry:
        """Stage a new collection entry and assign its ID (no commit)."""
        self.session.add(entry)
        self.session.flush()
        return entry

    def get_by_id(self, collection_id: int) -> CollectionEntry:
        """
        Retrieve a collection entry by ID.

        Raises:
            CollectionNotFoundError: If the entry doesn't exist
        """
        entry = self.session.get(CollectionEntry, collection_id)
        if not entry:
            raise CollectionNotFoundError(collection_id=collection_id)
        return entry

    def list_entries(
        self,
        qc_status: str | None = None,
        consumption_status: str | None = None,
        supplier_id: int | None = None,
        collected_from: datetime | None = None,
        collected_to: datetime | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[CollectionEntry]:
        """
        List collection entries, newest first.

        Args:
            qc_status: Only entries with this QC status
            consumption_status: Only entries with this consumption status
            supplier_id: Only entries from this supplier
            collected_from: Inclusive lower bound on collected_at
            collected_to: Exclusive upper bound on collected_at
            skip: Pagination offset
            limit: Page size
        """
        statement = select(CollectionEntry)
        if qc_status is not None:
            statement = statement.where(CollectionEntry.qc_status == qc_status)
        if consumption_status is not None:
            statement = statement.where(
                CollectionEntry.consumption_status == consumption_status
            )
        if supplier_id is not None:
            statement = statement.where(CollectionEntry.supplier_id == supplier_id)
        if collected_from is not None:
            statement = statement.where(CollectionEntry.collected_at >= collected_from)
        if collected_to is not None:
            statement = statement.where(CollectionEntry.collected_at < collected_to)

        statement = (
            statement.order_by(
                CollectionEntry.collected_at.desc(),  # type: ignore[union-attr]
                CollectionEntry.id.desc(),  # type: ignore[union-attr]
            )
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def lock_many(self, collection_ids: Iterable[int]) -> dict[int, CollectionEntry]:
        """
        Load collection entries with SELECT FOR UPDATE.

        Returns:
            Mapping of id to entry; ids that don't exist are absent
        """
        ids = list(collection_ids)
        statement = (
            select(CollectionEntry)
            .where(CollectionEntry.id.in_(ids))  # type: ignore[union-attr]
            .order_by(CollectionEntry.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {entry.id: entry for entry in self.session.exec(statement).all()}

    def mark_used_in_batch(self, collection_ids: List[int]) -> int:
        """
        Compare-and-set approved/new entries to used_in_batch.

        Returns:
            Number of rows that actually changed
        """
        statement = (
            update(CollectionEntry)
            .where(
                CollectionEntry.id.in_(collection_ids),  # type: ignore[union-attr]
                CollectionEntry.qc_status == QcStatus.APPROVED.value,
                CollectionEntry.consumption_status == ConsumptionStatus.NEW.value,
            )
            .values(
                consumption_status=ConsumptionStatus.USED_IN_BATCH.value,
                version=CollectionEntry.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        result = self.session.exec(statement)
        return result.rowcount

    def set_qc_status(
        self,
        collection_id: int,
        new_status: str,
        reviewed_by: int | None = None,
    ) -> int:
        """
        Compare-and-set a pending entry to ``new_status``.

        Returns:
            Number of rows that actually changed (0 or 1)
        """
        now = datetime.now(timezone.utc)
        statement = (
            update(CollectionEntry)
            .where(
                CollectionEntry.id == collection_id,
                CollectionEntry.qc_status == QcStatus.PENDING.value,
            )
            .values(
                qc_status=new_status,
                reviewed_by=reviewed_by,
                reviewed_at=now,
                version=CollectionEntry.version + 1,
                updated_at=now,
            )
        )
        result = self.session.exec(statement)
        return result.rowcount
