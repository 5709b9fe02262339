"""API endpoints for the milk pool: balance, withdrawals and reset."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from milkpool.database import get_session
from milkpool.domain.exceptions import (
    ConcurrencyConflict,
    InsufficientPool,
    NoActivePool,
    PoolNotFoundError,
    StorageUnavailable,
    ValidationError,
)
from milkpool.domain.services.pool_service import PoolService
from milkpool.schemas.pool import (
    PoolCollectionListResponse,
    PoolCollectionResponse,
    PoolListResponse,
    PoolResponse,
    ResetRequest,
    ResetResponse,
    UsageListResponse,
    UsageLogResponse,
    WithdrawRequest,
    WithdrawResponse,
)

router = APIRouter(prefix="/pools", tags=["pools"])


@router.get("/active", response_model=PoolResponse)
def get_active_pool(
    session: Annotated[Session, Depends(get_session)],
) -> PoolResponse:
    """Get the active pool, opening an empty one if none exists."""
    service = PoolService(session)

    try:
        pool = service.get_active_pool()
        return PoolResponse.model_validate(pool)

    except (NoActivePool, ConcurrencyConflict) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except StorageUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


@router.get("/archived", response_model=PoolListResponse)
def list_archived_pools(
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    session: Annotated[Session, Depends(get_session)] = None,
) -> PoolListResponse:
    """List archived pools, newest first."""
    service = PoolService(session)
    pools = service.list_archived_pools(skip=skip, limit=limit)

    return PoolListResponse(
        pools=[PoolResponse.model_validate(p) for p in pools],
        total=len(pools),
    )


@router.get("/{pool_id}", response_model=PoolResponse)
def get_pool(
    pool_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> PoolResponse:
    """Retrieve a pool by ID."""
    service = PoolService(session)

    try:
        pool = service.get_pool(pool_id)
        return PoolResponse.model_validate(pool)

    except PoolNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get("/{pool_id}/usage", response_model=UsageListResponse)
def list_pool_usage(
    pool_id: int,
    limit: int = Query(20, ge=1, le=1000, description="Number of entries"),
    session: Annotated[Session, Depends(get_session)] = None,
) -> UsageListResponse:
    """List withdrawals from a pool, newest first."""
    service = PoolService(session)

    try:
        entries = service.list_usage(pool_id, limit=limit)
    except PoolNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return UsageListResponse(
        entries=[UsageLogResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get("/{pool_id}/collections", response_model=PoolCollectionListResponse)
def list_pool_collections(
    pool_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> PoolCollectionListResponse:
    """List the collections folded into a pool, oldest first."""
    service = PoolService(session)

    try:
        links = service.list_pool_collections(pool_id)
    except PoolNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return PoolCollectionListResponse(
        entries=[PoolCollectionResponse.model_validate(link) for link in links],
        total=len(links),
    )


@router.post("/{pool_id}/withdraw", response_model=WithdrawResponse)
def withdraw_from_pool(
    pool_id: int,
    withdraw_data: WithdrawRequest,
    session: Annotated[Session, Depends(get_session)],
) -> WithdrawResponse:
    """Withdraw liters from the active pool at its current average quality."""
    service = PoolService(session)

    try:
        usage = service.withdraw(
            quantity_liters=withdraw_data.quantity_liters,
            pool_id=pool_id,
            purpose=withdraw_data.purpose,
            used_by=withdraw_data.used_by,
        )
        pool = service.get_pool(usage.milk_pool_id)

        return WithdrawResponse(
            usage=UsageLogResponse.model_validate(usage),
            pool=PoolResponse.model_validate(pool),
        )

    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        )
    except (InsufficientPool, NoActivePool, ConcurrencyConflict) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except StorageUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


@router.post("/{pool_id}/reset", response_model=ResetResponse)
def reset_pool(
    pool_id: int,
    reset_data: ResetRequest,
    session: Annotated[Session, Depends(get_session)],
) -> ResetResponse:
    """Archive the active pool and open a fresh empty one (atomic operation)."""
    service = PoolService(session)

    try:
        summary = service.reset_pool(pool_id=pool_id, acting_user=reset_data.acting_user)
        return ResetResponse.model_validate(summary)

    except (NoActivePool, ConcurrencyConflict) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    except StorageUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
