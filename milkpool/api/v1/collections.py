"""API endpoints for the milk collection ledger."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from milkpool.database import get_session
from milkpool.domain.exceptions import (
    CollectionNotFoundError,
    ConcurrencyConflict,
    InvalidCollectionState,
    StorageUnavailable,
    ValidationError,
)
from milkpool.domain.models import ConsumptionStatus, QcStatus
from milkpool.domain.services.collection_service import CollectionService
from milkpool.schemas.collection import (
    CollectionCreateRequest,
    CollectionListResponse,
    CollectionResponse,
    QcUpdateRequest,
)

router = APIRouter(prefix="/collections", tags=["collections"])


@router.post("/", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
def record_collection(
    collection_data: CollectionCreateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> CollectionResponse:
    """Record a milk intake (pending QC)."""
    service = CollectionService(session)

    try:
        entry = service.record_collection(
            supplier_id=collection_data.supplier_id,
            quantity_liters=collection_data.quantity_liters,
            fat_percent=collection_data.fat_percent,
            snf_percent=collection_data.snf_percent,
            price_per_liter=collection_data.price_per_liter,
            photo_url=collection_data.photo_url,
            operator_id=collection_data.operator_id,
            collected_at=collection_data.collected_at,
        )
        return CollectionResponse.model_validate(entry)

    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        )
    except StorageUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


@router.get("/eligible", response_model=CollectionListResponse)
def list_eligible_collections(
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    session: Annotated[Session, Depends(get_session)] = None,
) -> CollectionListResponse:
    """List approved collections not yet used in a batch."""
    service = CollectionService(session)
    entries = service.list_eligible(skip=skip, limit=limit)

    return CollectionListResponse(
        collections=[CollectionResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get("/", response_model=CollectionListResponse)
def list_collections(
    qc_status: QcStatus | None = Query(None, description="Filter by QC status"),
    consumption_status: ConsumptionStatus | None = Query(
        None, description="Filter by consumption status"
    ),
    supplier_id: int | None = Query(None, description="Filter by supplier"),
    collected_from: datetime | None = Query(None, description="Collected at or after"),
    collected_to: datetime | None = Query(None, description="Collected before"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    session: Annotated[Session, Depends(get_session)] = None,
) -> CollectionListResponse:
    """List collections, newest first."""
    service = CollectionService(session)
    entries = service.list_collections(
        qc_status=qc_status.value if qc_status else None,
        consumption_status=consumption_status.value if consumption_status else None,
        supplier_id=supplier_id,
        collected_from=collected_from,
        collected_to=collected_to,
        skip=skip,
        limit=limit,
    )

    return CollectionListResponse(
        collections=[CollectionResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get("/{collection_id}", response_model=CollectionResponse)
def get_collection(
    collection_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> CollectionResponse:
    """Retrieve a collection by ID."""
    service = CollectionService(session)

    try:
        entry = service.get_collection(collection_id)
        return CollectionResponse.model_validate(entry)

    except CollectionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.post("/{collection_id}/qc", response_model=CollectionResponse)
def adjust_qc_status(
    collection_id: int,
    qc_data: QcUpdateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> CollectionResponse:
    """Approve or reject a pending collection (one-time transition)."""
    service = CollectionService(session)

    try:
        entry = service.adjust_qc_status(
            collection_id=collection_id,
            new_status=qc_data.status,
            reviewed_by=qc_data.reviewed_by,
        )
        return CollectionResponse.model_validate(entry)

    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        )
    except CollectionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except (InvalidCollectionState, ConcurrencyConflict) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except StorageUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
