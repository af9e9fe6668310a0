"""
Access decision — what happens to a request, given its path and identity.

    legacy source?           -> REDIRECT to the current location (no auth check)
    owned by a dashboard?
        no user              -> UNAUTHENTICATED_PROTECTED: /auth/login?next=<path>
        role not satisfied   -> AUTHENTICATED_UNAUTHORIZED: the role's home
        role satisfied       -> AUTHENTICATED_AUTHORIZED: pass through
    auth page + user         -> AUTH_PAGE_WHILE_LOGGED_IN: ?next= or the role's home
    anything else            -> PUBLIC: pass through

Unauthorized callers are always sent home, never to an error page.
check_dashboard_access() is the single verdict for a known dashboard; both
the edge middleware and the per-area layout guard go through it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qs, urlencode

from gateway.access.defaults import default_dashboard
from gateway.access.identity import ANONYMOUS, Identity
from gateway.access.legacy import find_legacy_redirect
from gateway.access.paths import is_under, normalize_path, safe_next, split_target
from gateway.access.registry import Dashboard, find_matching_dashboard
from gateway.access.roles import DEFAULT_ROLE, satisfies

LOGIN_PATH = "/auth/login"
AUTH_PAGE_PREFIX = "/auth"
# Flow pages must stay reachable with or without a session.
AUTH_FLOW_PATHS = ("/auth/confirm", "/auth/error")
NEXT_PARAM = "next"


class AccessState(str, Enum):
    LEGACY_REDIRECT = "legacy_redirect"
    PUBLIC = "public"
    UNAUTHENTICATED_PROTECTED = "unauthenticated_protected"
    AUTHENTICATED_AUTHORIZED = "authenticated_authorized"
    AUTHENTICATED_UNAUTHORIZED = "authenticated_unauthorized"
    AUTH_PAGE_WHILE_LOGGED_IN = "auth_page_while_logged_in"


PASS_THROUGH_STATES = frozenset({AccessState.PUBLIC, AccessState.AUTHENTICATED_AUTHORIZED})


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    location: str | None = None
    dashboard: Dashboard | None = None

    @property
    def allowed(self) -> bool:
        return self.state in PASS_THROUGH_STATES

    @property
    def is_redirect(self) -> bool:
        return self.location is not None


def is_auth_page(path: str) -> bool:
    """Login, sign-up and friends; the confirm/error flow pages are excluded."""
    path = normalize_path(path)
    if not is_under(path, AUTH_PAGE_PREFIX):
        return False
    return not any(is_under(path, p) for p in AUTH_FLOW_PATHS)


def needs_identity(target: str) -> bool:
    """Whether resolving *target* needs to know who is asking."""
    path, _ = split_target(target)
    if find_legacy_redirect(path) is not None:
        return False
    return find_matching_dashboard(path) is not None or is_auth_page(path)


def login_location(path: str) -> str:
    return f"{LOGIN_PATH}?{urlencode({NEXT_PARAM: normalize_path(path)})}"


def check_dashboard_access(dashboard: Dashboard, identity: Identity, path: str) -> AccessDecision:
    """Verdict for a request already known to belong to *dashboard*."""
    if not identity.is_authenticated:
        return AccessDecision(AccessState.UNAUTHENTICATED_PROTECTED, login_location(path), dashboard)

    role = identity.role or DEFAULT_ROLE
    if not satisfies(role, dashboard.requirement):
        return AccessDecision(AccessState.AUTHENTICATED_UNAUTHORIZED, default_dashboard(role), dashboard)

    return AccessDecision(AccessState.AUTHENTICATED_AUTHORIZED, None, dashboard)


def resolve_access(target: str, identity: Identity | None = None) -> AccessDecision:
    """Decide a request target ("/path?query") for *identity*. Total; never raises."""
    identity = identity or ANONYMOUS
    path, query = split_target(target)

    legacy = find_legacy_redirect(path)
    if legacy is not None:
        location = f"{legacy}?{query}" if query else legacy
        return AccessDecision(AccessState.LEGACY_REDIRECT, location)

    dashboard = find_matching_dashboard(path)
    if dashboard is not None:
        return check_dashboard_access(dashboard, identity, path)

    if is_auth_page(path) and identity.is_authenticated:
        requested = parse_qs(query).get(NEXT_PARAM, [None])[0]
        fallback = default_dashboard(identity.role)
        return AccessDecision(AccessState.AUTH_PAGE_WHILE_LOGGED_IN, safe_next(requested, fallback))

    return AccessDecision(AccessState.PUBLIC)
