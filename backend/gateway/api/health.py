"""Health and metrics endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from gateway.access.legacy import LEGACY_REDIRECTS
from gateway.access.registry import DASHBOARDS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check(request: Request):
    provider = request.app.state.identity_provider
    components: dict = {
        "routing": {
            "status": "ok",
            "dashboards": len(DASHBOARDS),
            "legacy_redirects": len(LEGACY_REDIRECTS),
        },
    }

    try:
        reachable = await provider.ping()
    except Exception as exc:
        logger.warning("Identity provider health check failed: %s", exc)
        reachable = False
    components["identity"] = {
        "status": "connected" if reachable else "unreachable",
        "backend": provider.backend,
    }

    # An unreachable identity provider only degrades: requests are still
    # answered, every caller is treated as anonymous.
    overall = "healthy" if reachable else "degraded"
    return JSONResponse(
        status_code=200,
        content={
            "status": overall,
            "environment": request.app.state.settings.environment,
            "components": components,
        },
    )


@router.get("/metrics")
async def prometheus_metrics():
    """Expose Prometheus metrics in text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
