"""
GET /relay/{match_id}?cdn=...            -> rewritten master playlist
GET /relay/{match_id}/{segment_path}     -> streamed child playlist or media segment

Not under /api/v1: rewritten playlists embed these paths verbatim.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from core.context import RelayContext
from core.dependencies import get_context
from core.errors import RelayError
from relay.playlist import RELAY_PATH_PREFIX
from routes.responses import error_response

router = APIRouter(prefix=RELAY_PATH_PREFIX, tags=["relay"])


def _raw_segment_path(request: Request, segment_path: str) -> str:
    """
    Segment path as the client sent it, still percent-encoded.

    The path parameter is already decoded, so a token such as seg%3Fpart1.ts
    would otherwise reach the origin as a path plus a query.
    """
    raw = request.scope.get("raw_path")
    if not raw:
        return segment_path
    path = raw.decode("latin-1").split("?", 1)[0]
    marker = f"{RELAY_PATH_PREFIX}/"
    start = path.find(marker)
    if start < 0:
        return segment_path
    # "{match_id}/{segment_path}"
    _, sep, rest = path[start + len(marker):].partition("/")
    return rest if sep else segment_path


@router.get(
    "/{match_id}",
    summary="Relay master playlist",
    description="Fetches the match's playlist for the chosen CDN variant and rewrites child references through this relay.",
)
async def get_master_playlist(
    match_id: str,
    cdn: Optional[str] = Query(None, description="CDN variant name (default from DEFAULT_CDN)"),
    ctx: RelayContext = Depends(get_context),
):
    """200 rewritten .m3u8; 404 unknown match/variant, invalid or inaccessible stream; 5xx transport."""
    variant = cdn or ctx.settings.default_cdn
    try:
        playlist = await ctx.playlist_relay.get_master_playlist(match_id, variant)
    except RelayError as e:
        return error_response(e)
    return Response(content=playlist.text, media_type=playlist.media_type)


@router.get(
    "/{match_id}/{segment_path:path}",
    summary="Proxy a child playlist or segment",
    description="Resolves the path against the base URL recorded by the last master playlist request for the match.",
)
async def get_segment(
    match_id: str,
    segment_path: str,
    request: Request,
    ctx: RelayContext = Depends(get_context),
):
    """200 streamed origin bytes; 404 no session; 400 rejected path; origin status on origin failure."""
    relative_path = _raw_segment_path(request, segment_path)
    query = request.scope.get("query_string", b"").decode("latin-1")
    try:
        stream = await ctx.segment_proxy.get_segment(match_id, relative_path, query)
    except RelayError as e:
        return error_response(e)
    # The body iterator is not closed by Starlette when the client goes away.
    return StreamingResponse(
        stream.iter_bytes(),
        status_code=200,
        headers={"Content-Type": stream.content_type},
        background=BackgroundTask(stream.aclose),
    )
