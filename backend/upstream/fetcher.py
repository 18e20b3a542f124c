"""
Upstream fetcher: async HTTPS GET against the match feed and the origin CDN.

One shared httpx.AsyncClient; every call has an explicit timeout, sends a
browser-like User-Agent (some CDNs reject non-browser clients), is never
retried, and maps failures onto the relay error taxonomy:
timeout -> UpstreamTimeoutError, transport -> UpstreamError,
non-2xx -> UpstreamUnavailableError, bad JSON -> MalformedUpstreamDataError.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict

import httpx

from core.errors import (
    MalformedUpstreamDataError,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from upstream.metrics import record_request

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
STREAM_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FetchedText:
    """Decoded body of a successful GET plus the URL it was finally served from."""

    text: str
    url: str


class UpstreamStream:
    """
    Open streamed response from the origin.
    iter_bytes() pulls chunks on demand and always closes the upstream
    response, including when the consumer stops early (client disconnect).
    """

    def __init__(self, response: httpx.Response, url: str) -> None:
        self._response = response
        self.url = url
        self.status_code = response.status_code
        self.content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes(chunk_size=STREAM_CHUNK_SIZE):
                yield chunk
        except httpx.HTTPError as e:
            logger.error("Upstream stream aborted: url=%s error=%s", self.url, e)
            raise UpstreamError(f"Segment stream aborted: {e!s}", url=self.url) from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self._response.is_closed:
            await self._response.aclose()

    @property
    def is_closed(self) -> bool:
        return self._response.is_closed


class UpstreamFetcher:
    """HTTPS GET helper shared by the match catalog, the playlist relay and the segment proxy."""

    def __init__(self, client: httpx.AsyncClient, user_agent: str = "Mozilla/5.0") -> None:
        self._client = client
        self._user_agent = user_agent

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self._user_agent}

    async def _get(self, url: str, timeout: float) -> httpx.Response:
        t0 = time.perf_counter()
        try:
            r = await self._client.get(url, headers=self._headers(), timeout=timeout)
        except httpx.TimeoutException as e:
            record_request(success=False, latency_ms=(time.perf_counter() - t0) * 1000, timeout=True)
            logger.error("Upstream request timed out after %ss: url=%s", timeout, url)
            raise UpstreamTimeoutError("Request timed out", url=url) from e
        except httpx.RequestError as e:
            record_request(success=False, latency_ms=(time.perf_counter() - t0) * 1000)
            logger.error("Upstream network error: url=%s error=%s", url, e)
            raise UpstreamError(f"Network error: {e!s}", url=url) from e
        latency_ms = (time.perf_counter() - t0) * 1000
        if not r.is_success:
            record_request(success=False, latency_ms=latency_ms, bad_status=True)
            logger.error("Upstream returned status %s: url=%s", r.status_code, url)
            raise UpstreamUnavailableError(
                f"Upstream returned HTTP {r.status_code}",
                url=url,
                upstream_status=r.status_code,
            )
        record_request(success=True, latency_ms=latency_ms)
        return r

    async def fetch_json(self, url: str, timeout: float) -> Dict[str, Any]:
        """GET url and parse the body as a JSON object."""
        r = await self._get(url, timeout)
        try:
            data = r.json()
        except ValueError as e:
            logger.error("Upstream returned invalid JSON: url=%s error=%s", url, e)
            raise MalformedUpstreamDataError(f"Invalid JSON: {e!s}", url=url) from e
        if not isinstance(data, dict):
            logger.error("Upstream JSON is %s, expected object: url=%s", type(data).__name__, url)
            raise MalformedUpstreamDataError(
                f"Invalid JSON: expected an object, got {type(data).__name__}", url=url
            )
        return data

    async def fetch_text(self, url: str, timeout: float) -> FetchedText:
        """GET url and return the decoded body."""
        r = await self._get(url, timeout)
        return FetchedText(text=r.text, url=str(r.url))

    async def open_stream(self, url: str, timeout: float) -> UpstreamStream:
        """
        Start a streamed GET. The caller owns the returned UpstreamStream and
        must exhaust iter_bytes() or call aclose().
        """
        request = self._client.build_request("GET", url, headers=self._headers(), timeout=timeout)
        t0 = time.perf_counter()
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            record_request(success=False, latency_ms=(time.perf_counter() - t0) * 1000, timeout=True)
            logger.error("Upstream stream timed out after %ss: url=%s", timeout, url)
            raise UpstreamTimeoutError("Request timed out", url=url) from e
        except httpx.RequestError as e:
            record_request(success=False, latency_ms=(time.perf_counter() - t0) * 1000)
            logger.error("Upstream stream network error: url=%s error=%s", url, e)
            raise UpstreamError(f"Network error: {e!s}", url=url) from e
        latency_ms = (time.perf_counter() - t0) * 1000
        if not response.is_success:
            await response.aclose()
            record_request(success=False, latency_ms=latency_ms, bad_status=True)
            logger.error("Upstream stream returned status %s: url=%s", response.status_code, url)
            raise UpstreamUnavailableError(
                f"Upstream returned HTTP {response.status_code}",
                url=url,
                upstream_status=response.status_code,
            )
        record_request(success=True, latency_ms=latency_ms)
        return UpstreamStream(response, url)
