import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from core.config import get_settings
from core.context import dispose_relay_context, init_relay_context
from core.logging import setup_logging
from routes.api_v1 import api_v1_router
from routes.relay import router as relay_router

LANDING_PAGE = "main.html"

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)


def mount_player_pages(app: FastAPI, static_dir: Path) -> bool:
    """
    Serve the player pages from static_dir at "/", after every API and relay route.
    "/" answers with main.html when present, otherwise StaticFiles' index.html.
    """
    if not static_dir.is_dir():
        return False
    landing = static_dir / LANDING_PAGE
    if landing.is_file():

        @app.get("/", include_in_schema=False)
        async def landing_page() -> FileResponse:
            return FileResponse(landing)

    # Mounted last: "/" would otherwise match API and relay paths.
    app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    logger.info("Serving static files from %s", static_dir.resolve())
    return True


app = FastAPI(title=settings.app_name)

# CORS origins from CORS_ALLOW_ORIGINS (default "*").
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(api_v1_router)
app.include_router(relay_router)


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook."""
    init_relay_context(settings)
    logger.info("Application startup complete: feed=%s cors=%s", settings.feed_url, settings.cors_allow_origins)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Application shutdown hook."""
    await dispose_relay_context()
    logger.info("Application shutdown complete")


@app.get("/health")
async def health() -> dict:
    """Simple health check endpoint."""
    return {"status": "ok"}


mount_player_pages(app, Path(settings.static_dir))
