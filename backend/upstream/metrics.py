"""
Upstream IO metrics: requests, failures, timeouts, bad statuses and latency.
Counters cover both the feed fetch and the relay/proxy calls to the origin CDN.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List

# Only the most recent samples are kept.
_MAX_LATENCY_SAMPLES = 1000

_metrics_lock = threading.Lock()
_counters: Dict[str, int] = {
    "requests_total": 0,
    "failures_total": 0,
    "timeouts_total": 0,
    "bad_status_total": 0,
}
_latency_ms: List[float] = []


def record_request(
    *,
    success: bool,
    latency_ms: float,
    timeout: bool = False,
    bad_status: bool = False,
) -> None:
    """
    Record one upstream request. Deterministic: only uses provided values.
    Called by UpstreamFetcher after every outbound call.
    """
    with _metrics_lock:
        _counters["requests_total"] = _counters.get("requests_total", 0) + 1
        if not success:
            _counters["failures_total"] = _counters.get("failures_total", 0) + 1
        if timeout:
            _counters["timeouts_total"] = _counters.get("timeouts_total", 0) + 1
        if bad_status:
            _counters["bad_status_total"] = _counters.get("bad_status_total", 0) + 1
        _latency_ms.append(round(latency_ms, 2))
        if len(_latency_ms) > _MAX_LATENCY_SAMPLES:
            del _latency_ms[: len(_latency_ms) - _MAX_LATENCY_SAMPLES]


def _percentile(sorted_values: List[float], p: float) -> float:
    """Compute percentile (0..100). Returns 0.0 if empty."""
    if not sorted_values:
        return 0.0
    k = (len(sorted_values) - 1) * (p / 100.0)
    f = int(k)
    c = f + 1 if f + 1 < len(sorted_values) else f
    return float(sorted_values[f] + (k - f) * (sorted_values[c] - sorted_values[f]))


def upstream_metrics_snapshot() -> Dict[str, Any]:
    """
    Return a snapshot of current upstream metrics.
    Latency stats (p50, p95) are computed over the most recent samples.
    """
    with _metrics_lock:
        counters = dict(_counters)
        latencies = list(_latency_ms)
    sorted_lat = sorted(latencies)
    return {
        "counters": counters,
        "latency_ms": {
            "count": len(sorted_lat),
            "p50": round(_percentile(sorted_lat, 50), 2),
            "p95": round(_percentile(sorted_lat, 95), 2),
        },
    }


def reset_metrics() -> None:
    """Reset all metrics (for tests)."""
    with _metrics_lock:
        for k in _counters:
            _counters[k] = 0
        _latency_ms.clear()
