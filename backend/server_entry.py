"""
Server entrypoint: start uvicorn with the FastAPI relay app.

Run from the backend dir: python server_entry.py [--host 0.0.0.0] [--port 3000] [--log-level debug]
Or, once installed: match-relay --port 3000
Command-line flags override HOST, PORT and LOG_LEVEL from the environment.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# When run as a script, ensure backend dir is on path so "from main import app" works
_backend_dir = Path(__file__).resolve().parent
if str(_backend_dir) not in sys.path:
    sys.path.insert(0, str(_backend_dir))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live match HLS relay server")
    parser.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: PORT or 3000)")
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    # get_settings() is cached: overrides must be in the environment before the first call.
    if args.host:
        os.environ["HOST"] = args.host
    if args.port is not None:
        os.environ["PORT"] = str(args.port)
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    from core.config import get_settings
    from version import get_version

    settings = get_settings()
    from main import app
    import uvicorn

    logger = logging.getLogger(__name__)
    logger.info("Match relay %s listening on http://%s:%s", get_version(), settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
