"""
Map raw feed payloads to the normalized catalog schema.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from catalog.schema import TOP_LEVEL_VARIANTS, CatalogSnapshot, CdnVariant, Match, StreamSet

logger = logging.getLogger(__name__)


def _clean_url(value: Any) -> Optional[str]:
    """Absent, null, empty and non-string values all mean 'variant not offered'."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _stream_set(raw: Dict[str, Any]) -> StreamSet:
    cdn = raw.get("STREAMING_CDN")
    if not isinstance(cdn, dict):
        cdn = {}
    urls: Dict[str, Optional[str]] = {}
    for variant in CdnVariant:
        source = raw if variant in TOP_LEVEL_VARIANTS else cdn
        urls[variant.value] = _clean_url(source.get(variant.value))
    return StreamSet(**urls)


def normalize_match(raw: Any) -> Optional[Match]:
    """
    Normalize one feed entry. Returns None (and logs) for entries that cannot be
    addressed: not an object, or no match_id.
    """
    if not isinstance(raw, dict):
        logger.warning("Skipping feed entry of type %s", type(raw).__name__)
        return None
    match_id = raw.get("match_id")
    if match_id is None or (isinstance(match_id, str) and not match_id.strip()):
        logger.warning("Skipping feed entry without match_id: keys=%s", sorted(raw.keys()))
        return None
    if not isinstance(match_id, (int, str)) or isinstance(match_id, bool):
        match_id = str(match_id)

    teams = raw.get("teams")
    status = raw.get("status")
    category = raw.get("category")
    fields = dict(raw)
    fields.update(
        match_id=match_id,
        status=str(status) if status is not None else None,
        category=str(category) if category is not None else None,
        teams=teams if isinstance(teams, list) else [],
        streams=_stream_set(raw),
    )
    return Match.model_validate(fields)


def build_snapshot(payload: Dict[str, Any], fetched_at: datetime) -> CatalogSnapshot:
    """Normalize every entry and compute the aggregates in one pass."""
    raw_matches = payload.get("matches")
    if not isinstance(raw_matches, list):
        raw_matches = []

    matches: List[Match] = []
    for raw in raw_matches:
        match = normalize_match(raw)
        if match is not None:
            matches.append(match)

    categories: List[str] = []
    for match in matches:
        if match.category is not None and match.category not in categories:
            categories.append(match.category)

    feed_extra = {k: v for k, v in payload.items() if k != "matches"}
    return CatalogSnapshot(
        matches=matches,
        categories=categories,
        live_matches=sum(1 for m in matches if m.is_live),
        upcoming_matches=sum(1 for m in matches if m.is_upcoming),
        total_matches=len(matches),
        fetched_at=fetched_at,
        feed_extra=feed_extra,
    )
