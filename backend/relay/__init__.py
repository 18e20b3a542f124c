"""Relay: HLS playlist rewriting, per-match session state and segment proxying."""

from .service import PlaylistRelay, RewrittenPlaylist, SegmentProxy
from .session import RelaySessionStore

__all__ = [
    "PlaylistRelay",
    "RelaySessionStore",
    "RewrittenPlaylist",
    "SegmentProxy",
]
