"""Business logic for the milk collection ledger."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlmodel import Session

from milkpool.domain.exceptions import (
    ConcurrencyConflict,
    InvalidCollectionState,
    ValidationError,
)
from milkpool.domain.models import CollectionEntry, ConsumptionStatus, QcStatus
from milkpool.domain.services.unit_of_work import run_atomic
from milkpool.domain.value_objects import to_liters
from milkpool.repositories.collection_repository import CollectionRepository

logger = logging.getLogger(__name__)

_REVIEW_OUTCOMES = frozenset({QcStatus.APPROVED.value, QcStatus.REJECTED.value})


def _check_percent(name: str, value: Decimal | None) -> None:
    if value is not None and not (0 <= value <= 100):
        raise ValidationError(f"{name} must be between 0 and 100, got {value}")


class CollectionService:
    """Service layer for collection intake and QC review."""

    def __init__(self, session: Session):
        self.session = session
        self.repository = CollectionRepository(session)

    def record_collection(
        self,
        supplier_id: int,
        quantity_liters: Decimal,
        fat_percent: Decimal | None = None,
        snf_percent: Decimal | None = None,
        price_per_liter: Decimal | None = None,
        photo_url: str | None = None,
        operator_id: int | None = None,
        collected_at: datetime | None = None,
    ) -> CollectionEntry:
        """
        Record a milk intake. New entries are always pending QC and unconsumed.

        Raises:
            ValidationError: Negative quantity or price, percentage outside 0-100
        """
        quantity = to_liters(quantity_liters)
        if quantity < 0:
            raise ValidationError(f"Quantity cannot be negative, got {quantity}L")
        _check_percent("fat_percent", fat_percent)
        _check_percent("snf_percent", snf_percent)
        if price_per_liter is not None and price_per_liter < 0:
            raise ValidationError(f"Price per liter cannot be negative, got {price_per_liter}")

        entry = CollectionEntry(
            supplier_id=supplier_id,
            operator_id=operator_id,
            quantity_liters=quantity,
            fat_percent=fat_percent,
            snf_percent=snf_percent,
            price_per_liter=price_per_liter,
            photo_url=photo_url,
        )
        if collected_at is not None:
            entry.collected_at = collected_at

        entry = run_atomic(
            self.session,
            lambda: self.repository.add(entry),
            name="record_collection",
        )
        logger.info(
            "Collection recorded",
            extra={"collection_id": entry.id, "quantity_liters": entry.quantity_liters},
        )
        return entry

    def get_collection(self, collection_id: int) -> CollectionEntry:
        """Retrieve a collection by ID."""
        return self.repository.get_by_id(collection_id)

    def list_collections(
        self,
        qc_status: str | None = None,
        consumption_status: str | None = None,
        supplier_id: int | None = None,
        collected_from: datetime | None = None,
        collected_to: datetime | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[CollectionEntry]:
        """List collections with optional filters, newest first."""
        return self.repository.list_entries(
            qc_status=qc_status,
            consumption_status=consumption_status,
            supplier_id=supplier_id,
            collected_from=collected_from,
            collected_to=collected_to,
            skip=skip,
            limit=limit,
        )

    def list_eligible(self, skip: int = 0, limit: int = 100) -> List[CollectionEntry]:
        """Collections that can go into a batch: approved and not yet used."""
        return self.list_collections(
            qc_status=QcStatus.APPROVED.value,
            consumption_status=ConsumptionStatus.NEW.value,
            skip=skip,
            limit=limit,
        )

    def adjust_qc_status(
        self,
        collection_id: int,
        new_status: str,
        reviewed_by: int | None = None,
    ) -> CollectionEntry:
        """
        Record the one-time QC outcome of a pending collection.

        Args:
            collection_id: Collection to review
            new_status: ``approved`` or ``rejected``
            reviewed_by: Reviewer reference

        Returns:
            The updated collection

        Raises:
            ValidationError: new_status is not a review outcome
            CollectionNotFoundError: Collection doesn't exist
            InvalidCollectionState: Collection was already reviewed
        """
        status = new_status.value if isinstance(new_status, QcStatus) else new_status
        if status not in _REVIEW_OUTCOMES:
            raise ValidationError(
                f"QC status must be one of {sorted(_REVIEW_OUTCOMES)}, got '{status}'"
            )

        def operation() -> CollectionEntry:
            entry = self.repository.get_by_id(collection_id)
            self.session.refresh(entry)
            if entry.qc_status != QcStatus.PENDING.value:
                raise InvalidCollectionState(
                    {collection_id: f"qc_status is already {entry.qc_status}"}
                )
            if self.repository.set_qc_status(collection_id, status, reviewed_by) != 1:
                raise ConcurrencyConflict(f"Collection {collection_id} was reviewed concurrently")
            return entry

        entry = run_atomic(self.session, operation, name="adjust_qc_status")
        logger.info(
            "Collection QC status set",
            extra={"collection_id": collection_id, "qc_status": status},
        )
        return entry
