"""
Relay API: master playlist rewriting, session recording and segment proxying
against a stubbed origin CDN. Zero real IO.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from upstream.fetcher import STREAM_CHUNK_SIZE

MASTER_URL = "https://cdn.example/a/master.m3u8"
MASTER_BODY = "#EXTM3U\nchunk1.ts\nsub.m3u8\n"


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_master_playlist_is_rewritten(relay_app, origin, relay_context):
    origin.add(MASTER_URL, MASTER_BODY, headers={"content-type": "application/vnd.apple.mpegurl"})
    async with _client(relay_app) as client:
        r = await client.get("/relay/1")
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/vnd.apple.mpegurl"
    assert r.text == "#EXTM3U\n/relay/1/chunk1.ts\n/relay/1/sub.m3u8\n"
    assert relay_context.sessions.get(1) == "https://cdn.example/a/"
    assert origin.user_agents[-1] == "Mozilla/5.0"


@pytest.mark.asyncio
async def test_segment_resolves_against_recorded_base(relay_app, origin):
    origin.add(MASTER_URL, MASTER_BODY)
    segment = bytes(range(256)) * 600
    origin.add("https://cdn.example/a/chunk1.ts", segment, headers={"content-type": "video/mp2t"}, streamed=True)
    async with _client(relay_app) as client:
        await client.get("/relay/1?cdn=adfree_stream")
        r = await client.get("/relay/1/chunk1.ts")
    assert r.status_code == 200
    assert r.headers["content-type"] == "video/mp2t"
    assert r.content == segment
    assert origin.count("https://cdn.example/a/chunk1.ts") == 1


@pytest.mark.asyncio
async def test_child_playlist_is_streamed_verbatim(relay_app, origin):
    child = "#EXTM3U\n#EXTINF:6.0,\nseg-0.ts\n"
    origin.add(MASTER_URL, MASTER_BODY)
    origin.add("https://cdn.example/a/sub.m3u8", child, headers={"content-type": "application/x-mpegURL"})
    async with _client(relay_app) as client:
        await client.get("/relay/1")
        r = await client.get("/relay/1/sub.m3u8")
    assert r.status_code == 200
    assert r.text == child
    assert r.headers["content-type"] == "application/x-mpegURL"


@pytest.mark.asyncio
async def test_segment_without_content_type_defaults_to_octet_stream(relay_app, origin):
    origin.add(MASTER_URL, MASTER_BODY)
    origin.add("https://cdn.example/a/chunk1.ts", b"\x47\x40\x00")
    async with _client(relay_app) as client:
        await client.get("/relay/1")
        r = await client.get("/relay/1/chunk1.ts")
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/octet-stream"


@pytest.mark.asyncio
async def test_segment_query_string_is_forwarded(relay_app, origin):
    origin.add(MASTER_URL, MASTER_BODY)
    origin.add("https://cdn.example/a/chunk1.ts?token=abc", b"ok", headers={"content-type": "video/mp2t"})
    async with _client(relay_app) as client:
        await client.get("/relay/1")
        r = await client.get("/relay/1/chunk1.ts?token=abc")
    assert r.status_code == 200
    assert r.content == b"ok"


@pytest.mark.asyncio
async def test_segment_before_master_is_session_not_found(relay_app, origin):
    async with _client(relay_app) as client:
        r = await client.get("/relay/1/chunk1.ts")
    assert r.status_code == 404
    assert r.json() == {"error": "Stream base URL not found", "kind": "SessionNotFound"}
    assert origin.calls == []


@pytest.mark.asyncio
async def test_master_origin_403_is_404_and_records_no_session(relay_app, origin, relay_context):
    origin.add(MASTER_URL, "Forbidden", status=403)
    async with _client(relay_app) as client:
        r = await client.get("/relay/1")
        seg = await client.get("/relay/1/chunk1.ts")
    assert r.status_code == 404
    assert r.json() == {"error": "Stream URL not accessible", "kind": "UpstreamUnavailable"}
    assert relay_context.sessions.get(1) is None
    assert seg.status_code == 404


@pytest.mark.asyncio
async def test_segment_origin_failure_mirrors_status(relay_app, origin):
    origin.add(MASTER_URL, MASTER_BODY)
    origin.add("https://cdn.example/a/chunk1.ts", "denied", status=403)
    async with _client(relay_app) as client:
        await client.get("/relay/1")
        r = await client.get("/relay/1/chunk1.ts")
    assert r.status_code == 403
    assert r.json()["kind"] == "UpstreamUnavailable"
    assert "error" in r.json()


@pytest.mark.asyncio
async def test_unknown_match_is_404(relay_app):
    async with _client(relay_app) as client:
        r = await client.get("/relay/999")
    assert r.status_code == 404
    assert r.json() == {"error": "Match not found", "kind": "NotFound"}


@pytest.mark.asyncio
async def test_unknown_missing_and_invalid_variants(relay_app, origin):
    async with _client(relay_app) as client:
        unknown = await client.get("/relay/1?cdn=no_such_cdn")
        missing = await client.get("/relay/1?cdn=fancode_cdn")
        invalid = await client.get("/relay/1?cdn=sony_cdn")
    assert unknown.status_code == 404
    assert unknown.json()["kind"] == "NotFound"
    assert missing.status_code == 404
    assert missing.json() == {"error": "Invalid or missing stream URL", "kind": "NotFound"}
    assert invalid.status_code == 404
    assert invalid.json()["kind"] == "InvalidStream"
    assert not any("sony.example" in url for url in origin.calls)


@pytest.mark.asyncio
async def test_master_transport_errors(relay_app, origin):
    origin.add(MASTER_URL, raises=httpx.ConnectError)
    origin.add("https://dai.example/b/index.m3u8", raises=httpx.ReadTimeout)
    async with _client(relay_app) as client:
        broken = await client.get("/relay/1")
        slow = await client.get("/relay/1?cdn=dai_stream")
    assert broken.status_code == 500
    assert broken.json()["kind"] == "UpstreamError"
    assert slow.status_code == 504
    assert slow.json()["kind"] == "UpstreamTimeout"


@pytest.mark.asyncio
async def test_traversal_segment_path_is_rejected_without_origin_call(relay_app, origin):
    origin.add(MASTER_URL, MASTER_BODY)
    async with _client(relay_app) as client:
        await client.get("/relay/1")
        calls_before = len(origin.calls)
        r = await client.get("/relay/1/720p/..%2Fsecret.ts")
    assert r.status_code == 400
    assert r.json()["kind"] == "InvalidSegmentPath"
    assert len(origin.calls) == calls_before


@pytest.mark.asyncio
async def test_other_variant_overwrites_match_session(relay_app, origin, relay_context):
    """Sessions are keyed by match id: the latest master request decides where segments resolve."""
    origin.add(MASTER_URL, MASTER_BODY)
    origin.add("https://cdn.example/hindi/master.m3u8", MASTER_BODY)
    origin.add("https://cdn.example/hindi/chunk1.ts", b"hindi", headers={"content-type": "video/mp2t"})
    async with _client(relay_app) as client:
        await client.get("/relay/1?cdn=adfree_stream")
        await client.get("/relay/1?cdn=hindi_stream")
        r = await client.get("/relay/1/chunk1.ts")
    assert relay_context.sessions.get(1) == "https://cdn.example/hindi/"
    assert r.content == b"hindi"


@pytest.mark.asyncio
async def test_rewritten_playlist_has_no_bare_media_tokens(relay_app, origin):
    body = (
        "#EXTM3U\n#EXT-X-VERSION:4\n"
        '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="a",NAME="en",URI="audio/en.m3u8"\n'
        "#EXT-X-STREAM-INF:BANDWIDTH=800000,AUDIO=\"a\"\n360p/index.m3u8\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=2400000,AUDIO=\"a\"\nhttps://cdn.example/a/720p/index.m3u8\n"
    )
    origin.add(MASTER_URL, body)
    async with _client(relay_app) as client:
        r = await client.get("/relay/1")
    assert r.status_code == 200
    assert r.text == (
        "#EXTM3U\n#EXT-X-VERSION:4\n"
        '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="a",NAME="en",URI="/relay/1/audio/en.m3u8"\n'
        "#EXT-X-STREAM-INF:BANDWIDTH=800000,AUDIO=\"a\"\n/relay/1/360p/index.m3u8\n"
        "#EXT-X-STREAM-INF:BANDWIDTH=2400000,AUDIO=\"a\"\n/relay/1/720p/index.m3u8\n"
    )


@pytest.mark.asyncio
async def test_percent_encoded_token_reaches_origin_verbatim(relay_app, origin):
    origin.add(MASTER_URL, "#EXTM3U\nseg%3Fpart1.ts\n")
    origin.add("https://cdn.example/a/seg%3Fpart1.ts", b"encoded", headers={"content-type": "video/mp2t"})
    origin.add("https://cdn.example/a/seg%3Fpart1.ts?token=abc", b"encoded+query", headers={"content-type": "video/mp2t"})
    async with _client(relay_app) as client:
        master = await client.get("/relay/1")
        plain = await client.get("/relay/1/seg%3Fpart1.ts")
        with_query = await client.get("/relay/1/seg%3Fpart1.ts?token=abc")
    assert master.text == "#EXTM3U\n/relay/1/seg%3Fpart1.ts\n"
    assert plain.status_code == 200
    assert plain.content == b"encoded"
    assert with_query.status_code == 200
    assert with_query.content == b"encoded+query"
    assert origin.calls[-2:] == [
        "https://cdn.example/a/seg%3Fpart1.ts",
        "https://cdn.example/a/seg%3Fpart1.ts?token=abc",
    ]


@pytest.mark.asyncio
async def test_off_origin_variant_is_prefixed_but_refused(relay_app, origin):
    origin.add(MASTER_URL, "#EXTM3U\nhttps://edge2.example/a/720p.m3u8\n")
    async with _client(relay_app) as client:
        master = await client.get("/relay/1")
        child = await client.get("/relay/1/https://edge2.example/a/720p.m3u8")
    assert master.text == "#EXTM3U\n/relay/1/https://edge2.example/a/720p.m3u8\n"
    assert child.status_code == 400
    assert child.json()["kind"] == "InvalidSegmentPath"
    assert not any("edge2.example" in url for url in origin.calls)


@pytest.mark.asyncio
async def test_client_disconnect_mid_segment_closes_upstream(relay_app, origin, relay_context):
    body = b"\x47" * (STREAM_CHUNK_SIZE * 8)
    origin.add(MASTER_URL, MASTER_BODY)
    origin.add("https://cdn.example/a/chunk1.ts", body, headers={"content-type": "video/mp2t"}, streamed=True)
    async with _client(relay_app) as client:
        await client.get("/relay/1")

    proxy = relay_context.segment_proxy
    original_get_segment = proxy.get_segment
    opened = []

    async def recording_get_segment(*args, **kwargs):
        stream = await original_get_segment(*args, **kwargs)
        opened.append(stream)
        return stream

    first_chunk_sent = asyncio.Event()
    request_delivered = False
    sent_bytes = 0

    async def receive():
        nonlocal request_delivered
        if not request_delivered:
            request_delivered = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await first_chunk_sent.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        nonlocal sent_bytes
        if message["type"] == "http.response.body" and message.get("body"):
            sent_bytes += len(message["body"])
            first_chunk_sent.set()

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/relay/1/chunk1.ts",
        "raw_path": b"/relay/1/chunk1.ts",
        "query_string": b"",
        "root_path": "",
        "headers": [(b"host", b"test")],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }
    with pytest.MonkeyPatch.context() as m:
        m.setattr(proxy, "get_segment", recording_get_segment)
        await relay_app(scope, receive, send)

    assert len(opened) == 1
    assert opened[0].is_closed
    assert 0 < sent_bytes < len(body)
