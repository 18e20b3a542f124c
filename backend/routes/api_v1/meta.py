"""GET /api/v1/meta/version and GET /api/v1/meta/upstream."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from core.context import RelayContext
from core.dependencies import get_context
from upstream.metrics import upstream_metrics_snapshot
from version import get_version

router = APIRouter(prefix="/meta", tags=["meta"])


@router.get("/version", summary="Application version")
def meta_version() -> dict:
    """Return version from repo root VERSION file."""
    return {"version": get_version()}


@router.get("/upstream", summary="Upstream IO metrics and relay state")
def meta_upstream(ctx: RelayContext = Depends(get_context)) -> dict:
    """Upstream request counters and latency, plus relay session count and catalog age."""
    age = ctx.catalog.age_seconds()
    return {
        "upstream": upstream_metrics_snapshot(),
        "relay_sessions": len(ctx.sessions),
        "catalog_age_seconds": round(age, 2) if age is not None else None,
        "catalog_stale": ctx.catalog.is_stale(),
    }
