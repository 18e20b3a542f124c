"""
HLS playlist rewriting and segment URL resolution.

Rewriting is line oriented and does not parse full HLS tag syntax:
- URI lines: each whitespace-delimited token whose path ends in .m3u8 or .ts
  becomes /relay/{match_id}/{token}.
- Tag lines: URI="..." attributes ending in .m3u8 or .ts are rewritten the
  same way (alternate audio/subtitle renditions); nothing else in the tag is touched.
Line endings and blank lines are preserved. fMP4 segments (.m4s/.mp4) and
EXT-X-BYTERANGE sub-ranges are not rewritten.

Absolute references under the master's base directory are made relative
before prefixing. Absolute references to any other host are still prefixed,
so no bare media token escapes the relay, but resolve_segment_url refuses
them (400): variants or segments hosted off the master's origin cannot be
played through the relay.
"""

from __future__ import annotations

import re
from typing import Optional, Union
from urllib.parse import unquote, urljoin, urlsplit, urlunsplit

from core.errors import InvalidSegmentPathError

PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"
PLAYLIST_MARKER = ".m3u8"
RELAY_PATH_PREFIX = "/relay"

_RELAYED_SUFFIXES = (".m3u8", ".ts")
_TOKEN_RE = re.compile(r"\S+")
_URI_ATTR_RE = re.compile(r'URI="([^"]*)"')
_PATH_SEPARATORS_RE = re.compile(r"[/\\]")


def looks_like_playlist(url: str) -> bool:
    """True when the URL carries the literal .m3u8 marker."""
    return PLAYLIST_MARKER in url


def base_directory_url(url: str) -> str:
    """
    Origin URL without query or fragment, truncated after its last '/'.

    >>> base_directory_url("https://cdn.example/a/master.m3u8?token=x")
    'https://cdn.example/a/'
    """
    parts = urlsplit(url)
    path = parts.path
    last_slash = path.rfind("/")
    base_path = path[: last_slash + 1] if last_slash >= 0 else "/"
    return urlunsplit((parts.scheme, parts.netloc, base_path, "", ""))


def _token_path(token: str) -> str:
    return token.split("#", 1)[0].split("?", 1)[0]


def is_relayed_token(token: str) -> bool:
    return _token_path(token).endswith(_RELAYED_SUFFIXES)


def relay_path(match_id: Union[int, str], token: str, base_url: Optional[str] = None) -> str:
    """Same-origin relay path for a playlist token. Absolute tokens under base_url are made relative first."""
    if base_url and token.startswith(base_url) and len(token) > len(base_url):
        token = token[len(base_url):]
    return f"{RELAY_PATH_PREFIX}/{match_id}/{token}"


def rewrite_playlist(text: str, match_id: Union[int, str], base_url: Optional[str] = None) -> str:
    """Point every child playlist and segment reference in text back at this relay."""

    def _rewrite_token(m: re.Match) -> str:
        token = m.group(0)
        if not is_relayed_token(token):
            return token
        return relay_path(match_id, token, base_url)

    def _rewrite_uri_attr(m: re.Match) -> str:
        uri = m.group(1)
        if not is_relayed_token(uri):
            return m.group(0)
        return f'URI="{relay_path(match_id, uri, base_url)}"'

    out = []
    for line in text.splitlines(keepends=True):
        if line.lstrip().startswith("#"):
            out.append(_URI_ATTR_RE.sub(_rewrite_uri_attr, line))
        else:
            out.append(_TOKEN_RE.sub(_rewrite_token, line))
    return "".join(out)


def resolve_segment_url(base_url: str, relative_path: str, query: str = "") -> str:
    """
    Resolve a relayed path against the recorded base directory URL.

    Plain relative paths resolve to exactly base_url + relative_path. Paths with
    a '..' segment (raw or percent-encoded), empty paths, and paths that resolve
    to another scheme/host are rejected with InvalidSegmentPathError.
    """
    if not relative_path:
        raise InvalidSegmentPathError("Empty segment path")
    decoded = unquote(relative_path)
    if any(part == ".." for part in _PATH_SEPARATORS_RE.split(decoded)):
        raise InvalidSegmentPathError("Segment path must not contain '..'")

    url = urljoin(base_url, relative_path)
    base, target = urlsplit(base_url), urlsplit(url)
    if (target.scheme, target.netloc) != (base.scheme, base.netloc):
        raise InvalidSegmentPathError("Segment path resolves outside the stream origin")
    if query:
        url = f"{url}{'&' if target.query else '?'}{query}"
    return url
