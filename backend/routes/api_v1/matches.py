"""GET /api/v1/matches and GET /api/v1/matches/{match_id}."""

import logging

from fastapi import APIRouter, Depends

from core.dependencies import get_context
from core.context import RelayContext
from core.errors import NotFoundError, UpstreamError
from routes.responses import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get(
    "",
    summary="List matches",
    description="Returns the cached catalog snapshot (refreshed when older than the cache TTL).",
)
async def list_matches(ctx: RelayContext = Depends(get_context)):
    """GET /api/v1/matches -> snapshot with matches, categories and live/upcoming/total counts."""
    try:
        snapshot = await ctx.catalog.refresh_if_stale()
    except UpstreamError as e:
        logger.error("API Error: %s", e.message)
        return error_response(e, status_code=500, prefix="Failed to fetch matches: ")
    return snapshot.to_public_dict()


@router.get(
    "/{match_id}",
    summary="Get one match",
    description="Returns a single normalized match or 404.",
)
async def get_match(match_id: str, ctx: RelayContext = Depends(get_context)):
    """GET /api/v1/matches/{match_id} -> Match JSON or 404."""
    try:
        match = await ctx.catalog.get_match(match_id)
    except NotFoundError as e:
        return error_response(e)
    except UpstreamError as e:
        logger.error("Match Fetch Error: match_id=%s error=%s", match_id, e.message)
        return error_response(e, status_code=500, prefix="Failed to fetch match: ")
    return match.model_dump(mode="json")
