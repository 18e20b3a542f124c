"""
Process-wide logging for the relay.

One line format for the app and uvicorn. The outbound HTTP client loggers
(httpx, httpcore) log every feed and segment request, so they stay at WARNING
unless the relay itself runs at DEBUG.
"""

import logging

from .config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
_CLIENT_LOGGERS = ("httpx", "httpcore")


def resolve_level(name: str) -> int:
    """Numeric level for a LOG_LEVEL value; unknown names fall back to INFO."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(settings: Settings) -> int:
    """Configure the root logger, uvicorn and the HTTP client loggers. Returns the applied level."""
    level = resolve_level(settings.log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in _SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)

    client_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)
    return level
