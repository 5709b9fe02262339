"""Main router aggregator for API v1."""

from fastapi import APIRouter

from milkpool.api.v1.batches import router as batches_router
from milkpool.api.v1.collections import router as collections_router
from milkpool.api.v1.pools import router as pools_router

router = APIRouter(prefix="/api")

router.include_router(collections_router)
router.include_router(batches_router)
router.include_router(pools_router)
