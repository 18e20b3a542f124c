"""Catalog: normalized match feed snapshot with TTL refresh."""

from .schema import (
    STATUS_LIVE,
    STATUS_NOT_STARTED,
    CatalogSnapshot,
    CdnVariant,
    Match,
    StreamSet,
)

__all__ = [
    "STATUS_LIVE",
    "STATUS_NOT_STARTED",
    "CatalogSnapshot",
    "CdnVariant",
    "Match",
    "StreamSet",
]
