"""API endpoints for batch operations."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from milkpool.database import get_session
from milkpool.domain.exceptions import (
    BatchNotFoundError,
    ConcurrencyConflict,
    DuplicateBatchCodeError,
    InvalidCollectionState,
    NoActivePool,
    StorageUnavailable,
    ValidationError,
)
from milkpool.domain.services.batch_service import BatchService
from milkpool.schemas.batch import (
    BatchCreateRequest,
    BatchListResponse,
    BatchResponse,
)

router = APIRouter(prefix="/batches", tags=["batches"])


@router.post("/", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
def create_batch(
    batch_data: BatchCreateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> BatchResponse:
    """Create a batch from approved collections (atomic operation)."""
    service = BatchService(session)

    try:
        batch = service.create_batch(
            created_by=batch_data.created_by,
            collection_ids=batch_data.collection_ids,
            product_id=batch_data.product_id,
            yield_quantity=batch_data.yield_quantity,
            batch_code=batch_data.batch_code,
            expiry_date=batch_data.expiry_date,
        )
        return BatchResponse.model_validate(batch)

    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        )
    except (
        InvalidCollectionState,
        DuplicateBatchCodeError,
        NoActivePool,
        ConcurrencyConflict,
    ) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except StorageUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


@router.get("/", response_model=BatchListResponse)
def list_batches(
    milk_pool_id: int | None = Query(None, description="Only batches folded into this pool"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    session: Annotated[Session, Depends(get_session)] = None,
) -> BatchListResponse:
    """List batches, newest first."""
    service = BatchService(session)
    batches = service.list_batches(milk_pool_id=milk_pool_id, skip=skip, limit=limit)

    return BatchListResponse(
        batches=[BatchResponse.model_validate(b) for b in batches],
        total=len(batches),
    )


@router.get("/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> BatchResponse:
    """Retrieve a batch by ID."""
    service = BatchService(session)

    try:
        batch = service.get_batch(batch_id)
        return BatchResponse.model_validate(batch)

    except BatchNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
