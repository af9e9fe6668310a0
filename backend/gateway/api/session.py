"""Session API — who am I, where do I belong, and which area owns a path."""

from fastapi import APIRouter, Depends, Response

from gateway.access.defaults import default_dashboard
from gateway.access.identity import Identity
from gateway.access.registry import accessible_dashboards, get_current_dashboard
from gateway.access.roles import has_role_access, role_label
from gateway.api.deps import get_identity, require_user

router = APIRouter(prefix="/api", tags=["session"])


@router.get("/me")
async def me(response: Response, identity: Identity = Depends(require_user)):
    """Current identity. Clients may cache it until they see a session change."""
    response.headers["Cache-Control"] = "no-store"
    role = identity.role
    return {
        "user": identity.user.to_dict(),
        "role": role.value,
        "role_label": role_label(role),
        "default_dashboard": default_dashboard(role),
        "dashboards": [d.to_dict() for d in accessible_dashboards(role)],
    }


@router.get("/dashboards/current")
async def current_dashboard(path: str, identity: Identity = Depends(get_identity)):
    """Dashboard owning *path* with its navigation, or null for public pages."""
    dashboard = get_current_dashboard(path)
    if dashboard is None:
        return {"dashboard": None}
    return {
        "dashboard": dashboard.to_dict(),
        "navigation": [item.to_dict() for item in dashboard.navigation(path)],
        "has_access": has_role_access(identity.role, dashboard.requirement),
    }
