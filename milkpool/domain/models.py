"""SQLModel database models for the collection ledger, milk pools and batches."""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Index, text
from sqlmodel import Field, Relationship, SQLModel

from milkpool.domain.value_objects import ZERO, QualityProfile, average


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QcStatus(str, Enum):
    """Quality-control review outcome of a collection or batch."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ConsumptionStatus(str, Enum):
    """Whether a collection's volume has been committed to a batch."""

    NEW = "new"
    USED_IN_BATCH = "used_in_batch"


class PoolStatus(str, Enum):
    """Lifecycle of a milk pool; only one may be active at a time."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class CollectionEntry(SQLModel, table=True):
    """
    A single milk intake event from a supplier.

    Business Rules:
    - quantity and quality never change after creation
    - qc_status moves once: pending -> approved | rejected
    - consumption_status moves once: new -> used_in_batch, only when approved
    """

    __tablename__ = "milk_collections"

    id: Optional[int] = Field(default=None, primary_key=True)

    supplier_id: int = Field(index=True, description="Supplier reference")
    operator_id: Optional[int] = Field(default=None, description="Intake operator reference")

    quantity_liters: Decimal = Field(
        ge=0,
        max_digits=14,
        decimal_places=3,
        description="Collected volume in liters",
    )
    fat_percent: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        max_digits=6,
        decimal_places=3,
        description="Fat content percentage",
    )
    snf_percent: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        max_digits=6,
        decimal_places=3,
        description="Solids-not-fat percentage",
    )
    price_per_liter: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=12,
        decimal_places=2,
    )
    photo_url: Optional[str] = Field(default=None, max_length=500)

    qc_status: str = Field(default=QcStatus.PENDING.value, max_length=20, index=True)
    consumption_status: str = Field(
        default=ConsumptionStatus.NEW.value,
        max_length=20,
        index=True,
    )
    reviewed_by: Optional[int] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)

    version: int = Field(default=1, description="Version number for optimistic locking")

    collected_at: datetime = Field(default_factory=_utcnow, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def profile(self) -> QualityProfile:
        """Quality mass contributed by this collection when pooled."""
        return QualityProfile.from_percentages(
            self.quantity_liters,
            self.fat_percent,
            self.snf_percent,
        )

    @property
    def is_eligible_for_pooling(self) -> bool:
        return (
            self.qc_status == QcStatus.APPROVED.value
            and self.consumption_status == ConsumptionStatus.NEW.value
        )


class MilkPool(SQLModel, table=True):
    """
    The shared, quality-weighted buffer of unprocessed milk.

    ``total_*`` fields are lifetime "ever pooled" totals; ``remaining_*`` is the
    withdrawable balance. Fat/SNF are stored as mass units (liters x percent)
    and averaged on read. At most one row is active, enforced by a partial
    unique index.
    """

    __tablename__ = "milk_pools"
    __table_args__ = (
        Index(
            "uq_milk_pools_single_active",
            "status",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="Main Pool", max_length=100)

    total_milk_liters: Decimal = Field(default=ZERO, ge=0, max_digits=16, decimal_places=3)
    total_fat_units: Decimal = Field(default=ZERO, ge=0, max_digits=20, decimal_places=6)
    total_snf_units: Decimal = Field(default=ZERO, ge=0, max_digits=20, decimal_places=6)

    remaining_milk_liters: Decimal = Field(default=ZERO, ge=0, max_digits=16, decimal_places=3)
    remaining_fat_units: Decimal = Field(default=ZERO, ge=0, max_digits=20, decimal_places=6)
    remaining_snf_units: Decimal = Field(default=ZERO, ge=0, max_digits=20, decimal_places=6)

    original_avg_fat: Decimal = Field(default=ZERO, max_digits=8, decimal_places=4)
    original_avg_snf: Decimal = Field(default=ZERO, max_digits=8, decimal_places=4)

    status: str = Field(default=PoolStatus.ACTIVE.value, max_length=20, index=True)
    created_by: Optional[int] = Field(default=None)

    version: int = Field(default=1, description="Version number for optimistic locking")

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    usage_logs: list["MilkUsageLog"] = Relationship(back_populates="pool")

    @property
    def total_profile(self) -> QualityProfile:
        return QualityProfile(
            self.total_milk_liters,
            self.total_fat_units,
            self.total_snf_units,
        )

    @property
    def remaining_profile(self) -> QualityProfile:
        return QualityProfile(
            self.remaining_milk_liters,
            self.remaining_fat_units,
            self.remaining_snf_units,
        )

    @property
    def current_avg_fat(self) -> Decimal:
        return average(self.remaining_fat_units, self.remaining_milk_liters)

    @property
    def current_avg_snf(self) -> Decimal:
        return average(self.remaining_snf_units, self.remaining_milk_liters)

    @property
    def total_avg_fat(self) -> Decimal:
        return average(self.total_fat_units, self.total_milk_liters)

    @property
    def total_avg_snf(self) -> Decimal:
        return average(self.total_snf_units, self.total_milk_liters)

    @property
    def milk_used(self) -> Decimal:
        """Lifetime pooled volume minus what is still unconsumed."""
        return self.total_milk_liters - self.remaining_milk_liters

    @property
    def is_active(self) -> bool:
        return self.status == PoolStatus.ACTIVE.value


class Batch(SQLModel, table=True):
    """
    A production batch made from approved, previously unconsumed collections.

    The ordered input collections are the batch's ``pool_links``; they are
    written in the same transaction as the batch and never change.
    """

    __tablename__ = "production_batches"

    id: Optional[int] = Field(default=None, primary_key=True)
    batch_code: str = Field(unique=True, index=True, max_length=40)

    product_id: int = Field(index=True, description="Finished product reference")
    created_by: int = Field(description="User who created the batch")
    milk_pool_id: int = Field(foreign_key="milk_pools.id", index=True)

    yield_quantity: Decimal = Field(gt=0, max_digits=14, decimal_places=3)
    expiry_date: Optional[date] = Field(default=None)
    produced_at: datetime = Field(default_factory=_utcnow, index=True)
    qc_status: str = Field(default=QcStatus.PENDING.value, max_length=20)

    created_at: datetime = Field(default_factory=_utcnow)

    pool_links: list["PoolCollection"] = Relationship(
        back_populates="batch",
        sa_relationship_kwargs={"order_by": "PoolCollection.position"},
    )

    @property
    def input_collection_ids(self) -> list[int]:
        return [link.collection_id for link in self.pool_links]

    @property
    def input_liters(self) -> Decimal:
        return sum((link.quantity_liters for link in self.pool_links), ZERO)


class PoolCollection(SQLModel, table=True):
    """
    Audit link for a collection folded into a pool by a batch.

    collection_id is unique, so a collection can be pooled at most once.
    """

    __tablename__ = "pool_collections"

    id: Optional[int] = Field(default=None, primary_key=True)
    milk_pool_id: int = Field(foreign_key="milk_pools.id", index=True)
    collection_id: int = Field(foreign_key="milk_collections.id", unique=True)
    batch_id: int = Field(foreign_key="production_batches.id", index=True)
    position: int = Field(ge=0, description="Order of the collection within its batch")

    quantity_liters: Decimal = Field(ge=0, max_digits=14, decimal_places=3)
    fat_units: Decimal = Field(ge=0, max_digits=20, decimal_places=6)
    snf_units: Decimal = Field(ge=0, max_digits=20, decimal_places=6)

    added_by: Optional[int] = Field(default=None)
    added_at: datetime = Field(default_factory=_utcnow)

    batch: Optional[Batch] = Relationship(back_populates="pool_links")

    @property
    def avg_fat(self) -> Decimal:
        return average(self.fat_units, self.quantity_liters)

    @property
    def avg_snf(self) -> Decimal:
        return average(self.snf_units, self.quantity_liters)


class MilkUsageLog(SQLModel, table=True):
    """A single withdrawal from a pool, with the balance left behind."""

    __tablename__ = "milk_usage_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    milk_pool_id: int = Field(foreign_key="milk_pools.id", index=True)

    used_liters: Decimal = Field(gt=0, max_digits=16, decimal_places=3)
    used_fat_units: Decimal = Field(ge=0, max_digits=20, decimal_places=6)
    used_snf_units: Decimal = Field(ge=0, max_digits=20, decimal_places=6)

    remaining_liters_after: Decimal = Field(ge=0, max_digits=16, decimal_places=3)
    remaining_fat_units_after: Decimal = Field(ge=0, max_digits=20, decimal_places=6)
    remaining_snf_units_after: Decimal = Field(ge=0, max_digits=20, decimal_places=6)

    purpose: Optional[str] = Field(default=None, max_length=200)
    used_by: Optional[int] = Field(default=None)
    used_at: datetime = Field(default_factory=_utcnow, index=True)

    pool: Optional[MilkPool] = Relationship(back_populates="usage_logs")

    @property
    def used_avg_fat(self) -> Decimal:
        return average(self.used_fat_units, self.used_liters)

    @property
    def used_avg_snf(self) -> Decimal:
        return average(self.used_snf_units, self.used_liters)

    @property
    def remaining_avg_fat_after(self) -> Decimal:
        return average(self.remaining_fat_units_after, self.remaining_liters_after)

    @property
    def remaining_avg_snf_after(self) -> Decimal:
        return average(self.remaining_snf_units_after, self.remaining_liters_after)
