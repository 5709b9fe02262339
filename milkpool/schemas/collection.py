"""Pydantic schemas for collection ledger requests and responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from milkpool.domain.models import QcStatus


class CollectionCreateRequest(BaseModel):
    """Request schema for recording a milk intake."""

    supplier_id: int = Field(description="Supplier reference")
    quantity_liters: Decimal = Field(
        ge=0,
        max_digits=14,
        decimal_places=3,
        description="Collected volume in liters",
        examples=[100.0],
    )
    fat_percent: Decimal | None = Field(
        default=None,
        ge=0,
        le=100,
        decimal_places=3,
        description="Fat content percentage",
    )
    snf_percent: Decimal | None = Field(
        default=None,
        ge=0,
        le=100,
        decimal_places=3,
        description="Solids-not-fat percentage",
    )
    price_per_liter: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    photo_url: str | None = Field(default=None, max_length=500)
    operator_id: int | None = Field(default=None, description="Intake operator reference")
    collected_at: datetime | None = Field(
        default=None,
        description="Intake timestamp (default: now)",
    )


class QcUpdateRequest(BaseModel):
    """Request schema for recording a QC review outcome."""

    status: QcStatus = Field(description="approved or rejected")
    reviewed_by: int | None = Field(default=None, description="Reviewer reference")


class CollectionResponse(BaseModel):
    """Response schema for a collection entry."""

    id: int
    supplier_id: int
    operator_id: int | None
    quantity_liters: float
    fat_percent: float | None
    snf_percent: float | None
    price_per_liter: float | None
    photo_url: str | None
    qc_status: str
    consumption_status: str
    reviewed_by: int | None
    reviewed_at: datetime | None
    collected_at: datetime
    created_at: datetime
    version: int

    model_config = {"from_attributes": True}


class CollectionListResponse(BaseModel):
    """Response schema for collection list."""

    collections: list[CollectionResponse]
    total: int
