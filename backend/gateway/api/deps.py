"""
API Dependencies — identity, the per-area layout check, role guards.

The edge middleware has usually resolved the identity already and left it on
request.state; get_identity() reuses it so a request never costs more than
one identity lookup.

Two kinds of guard:
  require_area(dashboard)   navigable pages; failure is a redirect (AreaRedirect)
  require_role(role)        JSON API routes; failure is 401/403
"""

import logging

from fastapi import Depends, HTTPException, Request

from gateway.access.decision import AccessState, check_dashboard_access
from gateway.access.identity import Identity, SupabaseAdminClient
from gateway.access.registry import Dashboard
from gateway.access.roles import Role, satisfies
from gateway.middleware.metrics import area_guard_denials_total

logger = logging.getLogger(__name__)


class AreaRedirect(Exception):
    """Raised by an area guard; turned into a redirect by the app's exception handler."""

    def __init__(self, location: str, state: AccessState):
        super().__init__(location)
        self.location = location
        self.state = state


# ── Identity ─────────────────────────────────────────────────────────────────

async def get_identity(request: Request) -> Identity:
    identity = getattr(request.state, "identity", None)
    if identity is None:
        identity = await request.app.state.identity_provider.get_identity(request)
        request.state.identity = identity
    return identity


def get_admin_client(request: Request) -> SupabaseAdminClient:
    return request.app.state.admin_client


# ── Per-area layout check ────────────────────────────────────────────────────

def require_area(dashboard: Dashboard):
    """
    Re-run the access verdict for the dashboard this area belongs to.

    Usage:
        router = APIRouter(prefix="/clinic",
                           dependencies=[Depends(require_area(clinic))])
    """
    async def _check(request: Request, identity: Identity = Depends(get_identity)) -> Identity:
        decision = check_dashboard_access(dashboard, identity, request.url.path)
        if not decision.allowed:
            area_guard_denials_total.labels(dashboard=dashboard.key, state=decision.state.value).inc()
            logger.info("Area guard for '%s' turned away %s (%s)",
                        dashboard.key, request.url.path, decision.state.value)
            raise AreaRedirect(decision.location, decision.state)
        return identity
    return _check


# ── JSON API guards ──────────────────────────────────────────────────────────

async def require_user(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity


def require_role(requirement: Role):
    """FastAPI dependency: authenticated caller whose role satisfies *requirement*."""
    async def _check(identity: Identity = Depends(require_user)) -> Identity:
        if not satisfies(identity.role, requirement):
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient role: requires {requirement.value}",
            )
        return identity
    return _check
