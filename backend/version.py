"""
Relay version for GET /api/v1/meta/version and the startup log line.

A source checkout reads the repo root VERSION file. An installed copy has no
VERSION file next to it and reads the match-relay distribution metadata.
"""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Optional

DISTRIBUTION_NAME = "match-relay"
UNKNOWN_VERSION = "0.0.0"


def _version_file_path() -> Path:
    # backend/version.py -> repo root
    return Path(__file__).resolve().parent.parent / "VERSION"


def _read_version_file(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        lines = path.read_text(encoding="utf-8").strip().splitlines()
    except OSError:
        return None
    return lines[0].strip() if lines else None


def get_version() -> str:
    """VERSION file first line, else installed metadata, else '0.0.0'."""
    from_file = _read_version_file(_version_file_path())
    if from_file:
        return from_file
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return UNKNOWN_VERSION
