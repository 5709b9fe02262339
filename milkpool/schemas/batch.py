"""Pydantic schemas for batch API requests and responses."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class BatchCreateRequest(BaseModel):
    """Request schema for creating a production batch."""

    created_by: int = Field(description="User creating the batch")
    collection_ids: list[int] = Field(
        min_length=1,
        description="Approved, unused collections to consume, in order",
        examples=[[1, 2, 3]],
    )
    product_id: int = Field(description="Finished product reference")
    yield_quantity: Decimal = Field(
        gt=0,
        max_digits=14,
        decimal_places=3,
        description="Produced quantity",
    )
    batch_code: str | None = Field(
        default=None,
        max_length=40,
        description="Batch code (generated when omitted)",
        examples=["B-20260301-0001"],
    )
    expiry_date: date | None = Field(default=None, description="Product expiry date")


class BatchResponse(BaseModel):
    """Response schema for batch details."""

    id: int
    batch_code: str
    product_id: int
    created_by: int
    milk_pool_id: int
    yield_quantity: float
    expiry_date: date | None
    produced_at: datetime
    qc_status: str
    input_collection_ids: list[int]
    input_liters: float
    created_at: datetime

    model_config = {"from_attributes": True}


class BatchListResponse(BaseModel):
    """Response schema for batch list."""

    batches: list[BatchResponse]
    total: int
