"""
Prometheus metrics middleware.

HTTP request metrics labelled by route template, plus the access-control
counters: edge decisions by state, area-guard denials and identity lookups.
"""

import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# ── HTTP metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Access control metrics ───────────────────────────────────────────────────

access_decisions_total = Counter(
    "access_decisions_total",
    "Access decisions taken at the edge, by resulting state",
    ["state"],
)

area_guard_denials_total = Counter(
    "area_guard_denials_total",
    "Requests turned away by the per-area layout check",
    ["dashboard", "state"],
)

# ── Identity provider metrics ────────────────────────────────────────────────

identity_lookups_total = Counter(
    "identity_lookups_total",
    "Identity lookups, by backend and outcome",
    ["backend", "outcome"],
)

identity_lookup_duration_seconds = Histogram(
    "identity_lookup_duration_seconds",
    "Identity provider round-trip in seconds",
    ["backend"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)


def _route_label(request: Request, status_code: int) -> str:
    """Route template the request was served by, keeping label cardinality bounded.

    e.g. /clinic/patients/42 -> /clinic/{subpath}
    """
    route = request.scope.get("route")
    if route is not None:
        return getattr(route, "path_format", None) or route.path
    # Edge redirects and 404s never reach a route.
    return "<redirect>" if 300 <= status_code < 400 else "<unmatched>"


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Skip metrics endpoint itself to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        method = request.method
        path = _route_label(request, response.status_code)

        http_requests_total.labels(
            method=method,
            path=path,
            status_code=response.status_code,
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            path=path,
        ).observe(duration)

        return response
