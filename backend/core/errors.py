"""
Error taxonomy shared by the catalog, the playlist relay and the segment proxy.

Services raise these; route handlers turn them into a JSON body
{"error": message, "kind": kind} with the error's status code.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for every failure surfaced to an HTTP caller."""

    kind: str = "RelayError"
    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class NotFoundError(RelayError):
    """Unknown match, unknown variant, or missing stream URL."""

    kind = "NotFound"
    status_code = 404


class SessionNotFoundError(NotFoundError):
    """No base URL recorded for a match: its master playlist was never relayed."""

    kind = "SessionNotFound"


class InvalidStreamError(RelayError):
    """Stream URL is present but does not look like an HLS playlist."""

    kind = "InvalidStream"
    status_code = 404


class InvalidSegmentPathError(RelayError):
    """Segment path would escape the recorded origin directory."""

    kind = "InvalidSegmentPath"
    status_code = 400


class UpstreamError(RelayError):
    """Network or transport fault talking to the feed or the origin CDN."""

    kind = "UpstreamError"
    status_code = 500

    def __init__(self, message: str, *, url: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)
        self.url = url


class UpstreamTimeoutError(UpstreamError):
    kind = "UpstreamTimeout"
    status_code = 504


class UpstreamUnavailableError(UpstreamError):
    """Origin answered with a non-2xx status."""

    kind = "UpstreamUnavailable"

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        upstream_status: int,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, url=url, status_code=status_code if status_code is not None else upstream_status)
        self.upstream_status = upstream_status


class MalformedUpstreamDataError(UpstreamError):
    """Feed body could not be parsed as a JSON object."""

    kind = "MalformedUpstreamData"
    status_code = 500
