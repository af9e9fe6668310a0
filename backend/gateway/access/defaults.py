"""
Default destinations — the home dashboard of every role.

Used after login, after an access denial and when an auth page is visited
with a session already open. validate_routing() proves at startup that each
destination is reachable by its own role, so a denial can never bounce the
caller back into another denial.
"""

import logging

from gateway.access.errors import ConfigurationError
from gateway.access.legacy import LEGACY_REDIRECTS, shadows
from gateway.access.registry import DASHBOARDS, NavRoute, find_matching_dashboard
from gateway.access.roles import DEFAULT_ROLE, Role, parse_role, satisfies

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARDS: dict[Role, str] = {
    Role.AFFILIATE: "/affiliates",
    Role.CLINIC: "/clinic",
    Role.FINANCE: "/finance",
    Role.SUPPORT: "/support",
    Role.ADMIN: "/admin",
}


def default_dashboard(role: Role | None) -> str:
    """Base path of the role's home dashboard. Total over every role."""
    role = parse_role(role)
    return DEFAULT_DASHBOARDS.get(role, DEFAULT_DASHBOARDS[DEFAULT_ROLE])


def nav_links_for_role(role: Role | None) -> list[NavRoute]:
    """Navigation routes of the role's home dashboard."""
    dashboard = find_matching_dashboard(default_dashboard(role))
    return list(dashboard.routes) if dashboard else []


def validate_routing() -> None:
    """Cross-check the role, dashboard and legacy tables. Raises ConfigurationError."""
    problems: list[str] = []

    for role in Role:
        path = DEFAULT_DASHBOARDS.get(role)
        if path is None:
            problems.append(f"role '{role.value}' has no default dashboard")
            continue
        dashboard = find_matching_dashboard(path)
        if dashboard is None:
            problems.append(f"default dashboard '{path}' of role '{role.value}' is not registered")
        elif not satisfies(role, dashboard.requirement):
            problems.append(
                f"role '{role.value}' cannot enter its own default dashboard '{dashboard.key}'"
            )
        if shadows(path):
            problems.append(f"default dashboard '{path}' is intercepted by a legacy redirect")

    for dashboard in DASHBOARDS:
        if shadows(dashboard.base):
            problems.append(f"dashboard base '{dashboard.base}' is intercepted by a legacy redirect")

    if problems:
        for p in problems:
            logger.critical("Routing configuration error: %s", p)
        raise ConfigurationError("; ".join(problems))

    logger.info(
        "Routing configuration OK: %d dashboards, %d legacy redirects, %d roles",
        len(DASHBOARDS), len(LEGACY_REDIRECTS), len(Role),
    )
