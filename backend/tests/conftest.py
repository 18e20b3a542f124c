# Ensure backend is at sys.path[0] when pytest runs (from repo root or from backend dir)
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

_tests_dir = Path(__file__).resolve().parent
_backend = _tests_dir.parent
_str_backend = str(_backend)
if sys.path[0:1] != [_str_backend]:
    sys.path.insert(0, _str_backend)

import httpx
import pytest

from core.config import Settings
from core.context import RelayContext
from upstream.metrics import reset_metrics

FEED_URL = "https://feed.example/fancode.json"
MASTER_URL = "https://cdn.example/a/master.m3u8"

FEED_PAYLOAD: Dict[str, Any] = {
    "matches": [
        {
            "match_id": 1,
            "status": "LIVE",
            "category": "Cricket",
            "title": "IND vs AUS",
            "teams": [{"name": "India"}, {"name": "Australia"}],
            "adfree_stream": MASTER_URL,
            "dai_stream": "https://dai.example/b/index.m3u8",
            "STREAMING_CDN": {
                "Primary_Playback_URL": "https://primary.example/c/master.m3u8",
                "hindi_stream": "https://cdn.example/hindi/master.m3u8",
                "sony_cdn": "https://sony.example/not-a-playlist.mp4",
                "fancode_cdn": "",
            },
        },
        {
            "match_id": "2",
            "status": "NOT_STARTED",
            "category": "Football",
            "adfree_stream": None,
        },
    ],
    "name": "fancode",
}


async def _chunked(data: bytes, size: int = 4096):
    for i in range(0, len(data), size):
        await asyncio.sleep(0)
        yield data[i : i + size]


class OriginStub:
    """
    Fake feed + origin CDN behind httpx.MockTransport. Unknown URLs answer 404.
    streamed=True serves the body as an async iterator so the response stays open until consumed.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes, Dict[str, str], Optional[Type[Exception]], bool]] = {}
        self.calls: List[str] = []
        self.user_agents: List[Optional[str]] = []

    def add(
        self,
        url: str,
        body: bytes | str = b"",
        *,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
        raises: Optional[Type[Exception]] = None,
        streamed: bool = False,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body, headers or {}, raises, streamed)

    def add_json(self, url: str, payload: Any, *, status: int = 200) -> None:
        self.add(url, json.dumps(payload), status=status, headers={"content-type": "application/json"})

    def count(self, url: str) -> int:
        return sum(1 for u in self.calls if u == url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        self.user_agents.append(request.headers.get("user-agent"))
        if url not in self.routes:
            return httpx.Response(404, text="not found")
        status, body, headers, raises, streamed = self.routes[url]
        if raises is not None:
            raise raises("simulated failure", request=request)
        if streamed:
            return httpx.Response(status, content=_chunked(body), headers=headers)
        return httpx.Response(status, content=body, headers=headers)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=True)


@pytest.fixture(autouse=True)
def _fresh_metrics():
    reset_metrics()
    yield


@pytest.fixture
def origin() -> OriginStub:
    stub = OriginStub()
    stub.add_json(FEED_URL, FEED_PAYLOAD)
    return stub


@pytest.fixture
def settings() -> Settings:
    return Settings(feed_url=FEED_URL, cache_ttl_seconds=30.0, static_dir="__no_static__")


@pytest.fixture
def relay_context(origin: OriginStub, settings: Settings) -> RelayContext:
    return RelayContext(settings, client=origin.client())


@pytest.fixture
def relay_app(relay_context: RelayContext):
    """FastAPI app with the relay context replaced by one wired to the origin stub."""
    from core.dependencies import get_context
    from main import app

    app.dependency_overrides[get_context] = lambda: relay_context
    yield app
    app.dependency_overrides.pop(get_context, None)
