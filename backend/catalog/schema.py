"""
Normalized match catalog schema: matches, their CDN stream sets, and the
immutable snapshot built from one feed fetch.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

STATUS_LIVE = "LIVE"
STATUS_NOT_STARTED = "NOT_STARTED"


class CdnVariant(str, Enum):
    """Named stream variants a feed entry may carry."""

    ADFREE = "adfree_stream"
    DAI = "dai_stream"
    PRIMARY = "Primary_Playback_URL"
    FANCODE_CDN = "fancode_cdn"
    DAI_GOOGLE_CDN = "dai_google_cdn"
    CLOUDFRONT_CDN = "cloudfront_cdn"
    SONY_CDN = "sony_cdn"
    HINDI = "hindi_stream"

    @classmethod
    def names(cls) -> List[str]:
        return [v.value for v in cls]

    @classmethod
    def parse(cls, name: str) -> Optional["CdnVariant"]:
        """Return the variant for name, or None when it is not a known variant."""
        try:
            return cls(name)
        except ValueError:
            return None


# Variants read from the top level of a feed entry; all others live under STREAMING_CDN.
TOP_LEVEL_VARIANTS = (CdnVariant.ADFREE, CdnVariant.DAI)


class StreamSet(BaseModel):
    """One optional playlist URL per CDN variant. None means the feed did not offer it."""

    model_config = ConfigDict(frozen=True)

    adfree_stream: Optional[str] = None
    dai_stream: Optional[str] = None
    Primary_Playback_URL: Optional[str] = None
    fancode_cdn: Optional[str] = None
    dai_google_cdn: Optional[str] = None
    cloudfront_cdn: Optional[str] = None
    sony_cdn: Optional[str] = None
    hindi_stream: Optional[str] = None

    def get(self, variant: CdnVariant) -> Optional[str]:
        return getattr(self, variant.value)

    def available(self) -> List[str]:
        """Variant names that carry a URL, in declaration order."""
        return [v.value for v in CdnVariant if self.get(v)]


class Match(BaseModel):
    """A feed entry with its streams normalized. Unknown feed fields are passed through."""

    model_config = ConfigDict(extra="allow", frozen=True)

    match_id: Union[int, str] = Field(..., description="Opaque feed identifier")
    status: Optional[str] = Field(None, description="LIVE, NOT_STARTED, or any other feed status")
    category: Optional[str] = Field(None, description="Sport or tournament category")
    teams: List[Any] = Field(default_factory=list)
    streams: StreamSet = Field(default_factory=StreamSet)

    @property
    def is_live(self) -> bool:
        return self.status == STATUS_LIVE

    @property
    def is_upcoming(self) -> bool:
        return self.status == STATUS_NOT_STARTED

    def has_id(self, match_id: Union[int, str]) -> bool:
        return str(self.match_id) == str(match_id)


class CatalogSnapshot(BaseModel):
    """
    Full normalized match list plus aggregates, built together by build_snapshot.
    Frozen: a refresh produces a new snapshot rather than mutating this one.
    """

    model_config = ConfigDict(frozen=True)

    matches: List[Match] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    live_matches: int = 0
    upcoming_matches: int = 0
    total_matches: int = 0
    fetched_at: datetime
    feed_extra: Dict[str, Any] = Field(default_factory=dict, description="Top-level feed keys passed through")

    def find(self, match_id: Union[int, str]) -> Optional[Match]:
        for match in self.matches:
            if match.has_id(match_id):
                return match
        return None

    def to_public_dict(self) -> Dict[str, Any]:
        """JSON body for GET /matches: feed keys first, computed fields always win."""
        body: Dict[str, Any] = dict(self.feed_extra)
        body.update(self.model_dump(mode="json", exclude={"feed_extra"}))
        return body
