"""Upstream: outbound HTTPS to the match feed and origin CDN, plus IO metrics."""

from .fetcher import FetchedText, UpstreamFetcher, UpstreamStream

__all__ = [
    "FetchedText",
    "UpstreamFetcher",
    "UpstreamStream",
]
