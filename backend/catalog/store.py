"""
Match catalog: most recent feed snapshot plus a TTL-based refresh.

The snapshot and the clock reading it was fetched at are swapped in with a
single attribute assignment, so readers always see a complete snapshot: the
previous one until the new one is fully built. There is no lock; requests
that arrive during the stale window may each trigger a feed fetch.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple, Union

from catalog.normalize import build_snapshot
from catalog.schema import CatalogSnapshot, CdnVariant, Match
from core.errors import NotFoundError
from upstream.fetcher import UpstreamFetcher

logger = logging.getLogger(__name__)


class MatchCatalog:
    """Read-through TTL cache over the match feed."""

    def __init__(
        self,
        fetcher: UpstreamFetcher,
        feed_url: str,
        ttl_seconds: float = 30.0,
        timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._feed_url = feed_url
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout
        self._clock = clock
        self._current: Optional[Tuple[CatalogSnapshot, float]] = None

    @property
    def snapshot(self) -> Optional[CatalogSnapshot]:
        """Current snapshot without refreshing (None before the first fetch)."""
        current = self._current
        return current[0] if current is not None else None

    def age_seconds(self) -> Optional[float]:
        current = self._current
        if current is None:
            return None
        return self._clock() - current[1]

    def is_stale(self) -> bool:
        age = self.age_seconds()
        return age is None or age >= self._ttl_seconds

    async def refresh(self) -> CatalogSnapshot:
        """Fetch the feed and install a new snapshot. Upstream errors propagate; the old snapshot stays."""
        logger.info("Refreshing match catalog from %s", self._feed_url)
        payload = await self._fetcher.fetch_json(self._feed_url, timeout=self._timeout)
        fetched_clock = self._clock()
        snapshot = build_snapshot(payload, fetched_at=datetime.now(timezone.utc))
        self._current = (snapshot, fetched_clock)
        logger.info(
            "Match catalog refreshed: total=%s live=%s upcoming=%s",
            snapshot.total_matches,
            snapshot.live_matches,
            snapshot.upcoming_matches,
        )
        return snapshot

    async def refresh_if_stale(self) -> CatalogSnapshot:
        current = self._current
        if current is not None and self._clock() - current[1] < self._ttl_seconds:
            return current[0]
        return await self.refresh()

    async def get_match(self, match_id: Union[int, str]) -> Match:
        snapshot = await self.refresh_if_stale()
        match = snapshot.find(match_id)
        if match is None:
            raise NotFoundError("Match not found")
        return match

    async def get_stream_url(self, match_id: Union[int, str], variant: str) -> str:
        """
        Return the playlist URL for (match_id, variant).
        Raises NotFoundError for an unknown match, an unknown variant name, or a variant the match does not offer.
        """
        match = await self.get_match(match_id)
        cdn = CdnVariant.parse(variant)
        if cdn is None:
            raise NotFoundError(f"Unknown CDN variant: {variant}")
        url = match.streams.get(cdn)
        if not url:
            raise NotFoundError("Invalid or missing stream URL")
        return url
