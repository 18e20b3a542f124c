"""
Playlist relay and segment proxy.

PlaylistRelay fetches a match's master playlist from the origin CDN, records
the origin's base directory for the match, and rewrites the playlist so every
child playlist and segment is requested through /relay/{match_id}/...
SegmentProxy resolves those requests against the recorded base directory and
streams the origin bytes back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from catalog.store import MatchCatalog
from core.errors import InvalidStreamError, SessionNotFoundError, UpstreamUnavailableError
from relay.playlist import (
    PLAYLIST_MEDIA_TYPE,
    base_directory_url,
    looks_like_playlist,
    resolve_segment_url,
    rewrite_playlist,
)
from relay.session import RelaySessionStore
from upstream.fetcher import UpstreamFetcher, UpstreamStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewrittenPlaylist:
    text: str
    base_url: str
    media_type: str = PLAYLIST_MEDIA_TYPE


class PlaylistRelay:
    """Validate, record and rewrite master playlists."""

    def __init__(
        self,
        catalog: MatchCatalog,
        fetcher: UpstreamFetcher,
        sessions: RelaySessionStore,
        timeout: float = 10.0,
    ) -> None:
        self._catalog = catalog
        self._fetcher = fetcher
        self._sessions = sessions
        self._timeout = timeout

    async def get_master_playlist(self, match_id: Union[int, str], variant: str) -> RewrittenPlaylist:
        """
        Return the rewritten master playlist for (match_id, variant).

        Raises NotFoundError (match/variant), InvalidStreamError (not a playlist URL),
        UpstreamUnavailableError (origin non-2xx, reported as 404), UpstreamError/UpstreamTimeoutError.
        The session base URL is recorded only after the origin answered 2xx.
        """
        stream_url = await self._catalog.get_stream_url(match_id, variant)
        if not looks_like_playlist(stream_url):
            logger.warning(
                "Rejecting non-playlist stream URL: match_id=%s cdn=%s url=%s", match_id, variant, stream_url
            )
            raise InvalidStreamError("Invalid or missing stream URL")

        logger.info("Validating and rewriting master playlist for match_id=%s, cdn=%s", match_id, variant)
        try:
            fetched = await self._fetcher.fetch_text(stream_url, timeout=self._timeout)
        except UpstreamUnavailableError as e:
            logger.error(
                "Failed to fetch master playlist: match_id=%s cdn=%s url=%s status=%s",
                match_id,
                variant,
                stream_url,
                e.upstream_status,
            )
            raise UpstreamUnavailableError(
                "Stream URL not accessible",
                url=stream_url,
                upstream_status=e.upstream_status,
                status_code=404,
            ) from e

        base_url = base_directory_url(fetched.url)
        self._sessions.record(match_id, base_url)
        text = rewrite_playlist(fetched.text, match_id, base_url)
        return RewrittenPlaylist(text=text, base_url=base_url)


class SegmentProxy:
    """Resolve relayed child paths against the recorded base URL and stream the origin response."""

    def __init__(self, fetcher: UpstreamFetcher, sessions: RelaySessionStore, timeout: float = 10.0) -> None:
        self._fetcher = fetcher
        self._sessions = sessions
        self._timeout = timeout

    def resolve(self, match_id: Union[int, str], relative_path: str, query: str = "") -> str:
        base_url = self._sessions.get(match_id)
        if base_url is None:
            logger.warning("Segment requested before master playlist: match_id=%s path=%s", match_id, relative_path)
            raise SessionNotFoundError("Stream base URL not found")
        return resolve_segment_url(base_url, relative_path, query)

    async def get_segment(self, match_id: Union[int, str], relative_path: str, query: str = "") -> UpstreamStream:
        """
        Open a streamed GET for a relayed segment or child playlist.
        Non-2xx raises UpstreamUnavailableError carrying the origin status.
        """
        segment_url = self.resolve(match_id, relative_path, query)
        logger.debug("Proxying segment: match_id=%s url=%s", match_id, segment_url)
        return await self._fetcher.open_stream(segment_url, timeout=self._timeout)
