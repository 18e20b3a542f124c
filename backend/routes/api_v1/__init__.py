"""API v1: match catalog and meta endpoints."""

from fastapi import APIRouter

from .matches import router as matches_router
from .meta import router as meta_router

router = APIRouter(prefix="/api/v1", tags=["api_v1"])
router.include_router(matches_router)
router.include_router(meta_router)

api_v1_router = router
