"""API v1 router aggregation."""

from fastapi import APIRouter

from indexer.api.v1.properties import router as properties_router
from indexer.api.v1.indexation import router as indexation_router

router = APIRouter(prefix="/api/v1")

router.include_router(properties_router)
router.include_router(indexation_router)
