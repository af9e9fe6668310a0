"""
Dashboard areas — the shell every page of an audience area renders inside.

One router per registered dashboard, mounted at its base path. Each router
carries the area's layout check, so a page handler only runs for callers the
edge middleware and the area agree on. Page bodies are rendered elsewhere;
the shell answers with what the layout needs: the dashboard, its sidebar
with the active entry flagged, the user and the dashboards they may switch to.
"""

from fastapi import APIRouter, Depends, Request

from gateway.access.identity import Identity
from gateway.access.registry import DASHBOARDS, Dashboard, DashboardRegistry, accessible_dashboards
from gateway.access.roles import role_label
from gateway.api.deps import require_area


def shell_payload(dashboard: Dashboard, identity: Identity, path: str) -> dict:
    role = identity.role
    return {
        "dashboard": dashboard.to_dict(),
        "navigation": [item.to_dict() for item in dashboard.navigation(path)],
        "user": {
            **identity.user.to_dict(),
            "role": role.value,
            "role_label": role_label(role),
        },
        "switcher": [d.to_dict() for d in accessible_dashboards(role)],
    }


def build_area_router(dashboard: Dashboard) -> APIRouter:
    router = APIRouter(prefix=dashboard.base, tags=[f"area:{dashboard.key}"])
    guard = require_area(dashboard)

    @router.get("", include_in_schema=False)
    async def area_home(request: Request, identity: Identity = Depends(guard)):
        return shell_payload(dashboard, identity, request.url.path)

    @router.get("/{subpath:path}", include_in_schema=False)
    async def area_page(subpath: str, request: Request, identity: Identity = Depends(guard)):
        return shell_payload(dashboard, identity, request.url.path)

    return router


def build_area_routers(registry: DashboardRegistry = DASHBOARDS) -> list[APIRouter]:
    # Longer bases first so a nested dashboard's routes win over its parent's catch-all.
    ordered = sorted(registry, key=lambda d: len(d.base), reverse=True)
    return [build_area_router(d) for d in ordered]
