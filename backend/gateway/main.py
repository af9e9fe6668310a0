import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from gateway.access.defaults import validate_routing
from gateway.access.identity import (
    IdentityProvider,
    SupabaseAdminClient,
    build_admin_client,
    build_identity_provider,
)
from gateway.api.admin_users import router as admin_users_router
from gateway.api.areas import build_area_routers
from gateway.api.auth_pages import router as auth_pages_router
from gateway.api.deps import AreaRedirect
from gateway.api.health import router as health_router
from gateway.api.session import router as session_router
from gateway.config import Settings, settings
from gateway.middleware.access_control import AccessControlMiddleware
from gateway.middleware.logging_config import configure_logging
from gateway.middleware.metrics import PrometheusMiddleware
from gateway.middleware.rate_limit import RateLimitMiddleware
from gateway.middleware.request_context import RequestContextMiddleware
from gateway.middleware.security_headers import SecurityHeadersMiddleware

logger = logging.getLogger("gateway")


def create_app(
    cfg: Settings = settings,
    identity_provider: IdentityProvider | None = None,
    admin_client: SupabaseAdminClient | None = None,
) -> FastAPI:
    """Build the application. Raises ConfigurationError on an inconsistent routing table."""
    validate_routing()

    provider = identity_provider or build_identity_provider(cfg)
    admin = admin_client or build_admin_client(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Identity backend: %s", provider.backend)
        yield
        await provider.aclose()
        await admin.aclose()

    app = FastAPI(
        title="Dashboard Gateway",
        description="Access control and dashboard routing for the marketing site and audience dashboards",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.identity_provider = provider
    app.state.admin_client = admin

    # ── CORS ─────────────────────────────────────────────────────────────────
    origins = [o.strip() for o in cfg.allowed_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # ── Edge access check (wrapped by the headers and request context) ───────
    app.add_middleware(AccessControlMiddleware, provider=provider)

    # ── Security headers ─────────────────────────────────────────────────────
    app.add_middleware(SecurityHeadersMiddleware)

    # ── Rate limiting (JSON API only) ────────────────────────────────────────
    if cfg.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            limit=cfg.rate_limit_per_minute,
            prefixes=cfg.rate_limited_path_prefixes,
            redis_url=cfg.redis_url,
        )

    # ── Request context (request ID + timing) ────────────────────────────────
    app.add_middleware(RequestContextMiddleware)

    # ── Prometheus metrics ───────────────────────────────────────────────────
    app.add_middleware(PrometheusMiddleware)

    @app.exception_handler(AreaRedirect)
    async def area_redirect_handler(request: Request, exc: AreaRedirect):
        return RedirectResponse(exc.location, status_code=307)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Return detailed error info in development mode so 500s are debuggable."""
        tb = traceback.format_exc()
        logging.getLogger("gateway").error(
            "Unhandled %s on %s %s: %s\n%s",
            type(exc).__name__, request.method, request.url.path, exc, tb,
        )
        if cfg.environment == "development":
            return JSONResponse(
                status_code=500,
                content={"detail": f"{type(exc).__name__}: {exc}", "traceback": tb.splitlines()[-5:]},
            )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    app.include_router(health_router)
    app.include_router(session_router)
    app.include_router(admin_users_router)
    app.include_router(auth_pages_router)
    for router in build_area_routers():
        app.include_router(router)

    @app.get("/")
    async def index():
        return {"page": "home", "service": "Dashboard Gateway"}

    return app


configure_logging(settings.log_level, settings.log_format)
app = create_app()
