from gateway.access.roles import Role, DEFAULT_ROLE, parse_role, satisfies, has_role_access, role_label
from gateway.access.registry import Dashboard, NavRoute, Icon, DASHBOARDS, find_matching_dashboard, get_current_dashboard
from gateway.access.legacy import LEGACY_REDIRECTS, find_legacy_redirect
from gateway.access.defaults import default_dashboard, validate_routing
from gateway.access.identity import Identity, User, ANONYMOUS
from gateway.access.decision import AccessState, AccessDecision, resolve_access, check_dashboard_access
from gateway.access.errors import ConfigurationError

__all__ = [
    "Role", "DEFAULT_ROLE", "parse_role", "satisfies", "has_role_access", "role_label",
    "Dashboard", "NavRoute", "Icon", "DASHBOARDS", "find_matching_dashboard", "get_current_dashboard",
    "LEGACY_REDIRECTS", "find_legacy_redirect",
    "default_dashboard", "validate_routing",
    "Identity", "User", "ANONYMOUS",
    "AccessState", "AccessDecision", "resolve_access", "check_dashboard_access",
    "ConfigurationError",
]
