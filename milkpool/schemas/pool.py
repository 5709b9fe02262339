"""Pydantic schemas for milk pool requests and responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class PoolResponse(BaseModel):
    """Response schema for a milk pool, with averages derived on read."""

    id: int
    name: str
    status: str
    total_milk_liters: float
    total_fat_units: float
    total_snf_units: float
    remaining_milk_liters: float
    remaining_fat_units: float
    remaining_snf_units: float
    original_avg_fat: float
    original_avg_snf: float
    current_avg_fat: float
    current_avg_snf: float
    total_avg_fat: float
    total_avg_snf: float
    milk_used: float
    created_by: int | None
    created_at: datetime
    updated_at: datetime
    version: int

    model_config = {"from_attributes": True}


class PoolListResponse(BaseModel):
    """Response schema for pool list."""

    pools: list[PoolResponse]
    total: int


class WithdrawRequest(BaseModel):
    """Request schema for withdrawing milk from the active pool."""

    quantity_liters: Decimal = Field(
        gt=0,
        max_digits=16,
        decimal_places=3,
        description="Liters to withdraw",
    )
    purpose: str | None = Field(
        default=None,
        max_length=200,
        description="Human-readable reason (e.g. production run ID)",
    )
    used_by: int | None = Field(default=None, description="User performing the withdrawal")


class UsageLogResponse(BaseModel):
    """Response schema for a single withdrawal."""

    id: int
    milk_pool_id: int
    used_liters: float
    used_fat_units: float
    used_snf_units: float
    used_avg_fat: float
    used_avg_snf: float
    remaining_liters_after: float
    remaining_fat_units_after: float
    remaining_snf_units_after: float
    remaining_avg_fat_after: float
    remaining_avg_snf_after: float
    purpose: str | None
    used_by: int | None
    used_at: datetime

    model_config = {"from_attributes": True}


class WithdrawResponse(BaseModel):
    """Response schema for a withdrawal: the log entry and the pool after it."""

    usage: UsageLogResponse
    pool: PoolResponse


class UsageListResponse(BaseModel):
    """Response schema for a pool's usage log."""

    entries: list[UsageLogResponse]
    total: int


class PoolCollectionResponse(BaseModel):
    """Response schema for one collection folded into a pool, as recorded then."""

    id: int
    milk_pool_id: int
    collection_id: int
    batch_id: int
    position: int
    quantity_liters: float
    fat_units: float
    snf_units: float
    avg_fat: float
    avg_snf: float
    added_by: int | None
    added_at: datetime

    model_config = {"from_attributes": True}


class PoolCollectionListResponse(BaseModel):
    """Response schema for a pool's collection history."""

    entries: list[PoolCollectionResponse]
    total: int


class ResetRequest(BaseModel):
    """Request schema for archiving the active pool."""

    acting_user: int | None = Field(default=None, description="User performing the reset")


class ResetResponse(BaseModel):
    """Reconciliation summary of a pool reset."""

    archived_pool_id: int
    new_pool_id: int
    milk_used: float
    collections_count: int
    usage_count: int
    inventory_count: int

    model_config = {"from_attributes": True}


class PoolHealthResponse(BaseModel):
    """Response schema for the single-active-pool check."""

    status: str
    active_pools: int

    model_config = {"from_attributes": True}
