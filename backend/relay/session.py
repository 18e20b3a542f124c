"""
Relay session store: match id -> base directory URL of the last master
playlist relayed for that match.

Keyed by match id alone. Two master requests for different variants of the
same match race, and the later one wins; segment requests cannot tell which
variant they belong to. Entries never expire.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class RelaySessionStore:
    """Overwrite-on-write map; a single dict assignment per update."""

    def __init__(self) -> None:
        self._base_urls: Dict[str, str] = {}

    @staticmethod
    def _key(match_id: Union[int, str]) -> str:
        return str(match_id)

    def record(self, match_id: Union[int, str], base_url: str) -> None:
        key = self._key(match_id)
        previous = self._base_urls.get(key)
        self._base_urls[key] = base_url
        if previous is not None and previous != base_url:
            logger.info("Relay session for match %s moved: %s -> %s", key, previous, base_url)

    def get(self, match_id: Union[int, str]) -> Optional[str]:
        return self._base_urls.get(self._key(match_id))

    def __len__(self) -> int:
        return len(self._base_urls)

    def __contains__(self, match_id: object) -> bool:
        return str(match_id) in self._base_urls
