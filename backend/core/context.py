from __future__ import annotations

import logging
from typing import Optional

import httpx

from catalog.store import MatchCatalog
from relay.service import PlaylistRelay, SegmentProxy
from relay.session import RelaySessionStore
from upstream.fetcher import UpstreamFetcher

from .config import Settings

logger = logging.getLogger(__name__)


class RelayContext:
    """Owns the shared HTTP client, the match catalog and the relay session state."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.client = client or httpx.AsyncClient(follow_redirects=True)
        self.fetcher = UpstreamFetcher(self.client, user_agent=settings.user_agent)
        self.catalog = MatchCatalog(
            self.fetcher,
            feed_url=settings.feed_url,
            ttl_seconds=settings.cache_ttl_seconds,
            timeout=settings.feed_timeout_seconds,
        )
        self.sessions = RelaySessionStore()
        self.playlist_relay = PlaylistRelay(
            self.catalog,
            self.fetcher,
            self.sessions,
            timeout=settings.relay_timeout_seconds,
        )
        self.segment_proxy = SegmentProxy(
            self.fetcher,
            self.sessions,
            timeout=settings.relay_timeout_seconds,
        )

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        if not self.client.is_closed:
            await self.client.aclose()


_relay_context: Optional[RelayContext] = None


def init_relay_context(settings: Settings) -> RelayContext:
    """Create the global RelayContext singleton if it does not exist yet."""
    global _relay_context

    if _relay_context is None:
        logger.info("Initializing relay context: feed=%s ttl=%ss", settings.feed_url, settings.cache_ttl_seconds)
        _relay_context = RelayContext(settings)
    return _relay_context


async def dispose_relay_context() -> None:
    """Close and drop the global RelayContext singleton."""
    global _relay_context

    if _relay_context is not None:
        logger.info("Disposing relay context")
        await _relay_context.aclose()
        _relay_context = None


def get_relay_context() -> RelayContext:
    """Return the initialized RelayContext instance."""
    if _relay_context is None:
        raise RuntimeError("RelayContext is not initialized.")
    return _relay_context
