"""
Dashboard registry — which audience-scoped area owns which URL prefix.

Every dashboard carries the role it requires and the ordered navigation
routes used to render its sidebar. The registry is built once at import
time and validated on construction: duplicate base paths, malformed paths
and navigation routes that escape their dashboard are configuration errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from gateway.access.errors import ConfigurationError
from gateway.access.paths import is_under, longest_prefix_match, normalize_path
from gateway.access.roles import Role, RoleRequirement, satisfies


class Icon(str, Enum):
    LAYOUT_DASHBOARD = "layout-dashboard"
    USERS = "users"
    FILE_TEXT = "file-text"
    SETTINGS = "settings"
    CALENDAR = "calendar"
    CALENDAR_DAYS = "calendar-days"
    CREDIT_CARD = "credit-card"
    MESSAGE_SQUARE = "message-square"
    LINK = "link"
    DOLLAR_SIGN = "dollar-sign"


DEFAULT_ICON = Icon.LAYOUT_DASHBOARD


@dataclass(frozen=True)
class NavRoute:
    href: str
    label: str
    icon: Icon | None = None


@dataclass(frozen=True)
class NavItem:
    href: str
    label: str
    icon: Icon
    active: bool

    def to_dict(self) -> dict:
        return {"href": self.href, "label": self.label, "icon": self.icon.value, "active": self.active}


@dataclass(frozen=True)
class Dashboard:
    key: str
    base: str
    label: str
    requirement: RoleRequirement
    routes: tuple[NavRoute, ...] = ()

    def owns(self, path: str) -> bool:
        return is_under(normalize_path(path), self.base)

    def navigation(self, path: str) -> list[NavItem]:
        """Sidebar entries, flagging the one the current path sits under."""
        path = normalize_path(path)
        items = []
        for route in self.routes:
            active = path == route.href or (route.href != self.base and is_under(path, route.href))
            items.append(NavItem(route.href, route.label, route.icon or DEFAULT_ICON, active))
        return items

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "base": self.base,
            "label": self.label,
            "required_role": self.requirement.value,
        }


class DashboardRegistry:
    """Immutable, validated collection of dashboards in display order."""

    def __init__(self, dashboards: Iterable[Dashboard]):
        self._dashboards: tuple[Dashboard, ...] = tuple(dashboards)
        self._validate()
        self._by_base = tuple((d.base, d) for d in self._dashboards)

    def _validate(self) -> None:
        seen_keys: set[str] = set()
        seen_bases: dict[str, str] = {}
        for d in self._dashboards:
            if d.key in seen_keys:
                raise ConfigurationError(f"Duplicate dashboard key '{d.key}'")
            seen_keys.add(d.key)

            if not d.base.startswith("/") or normalize_path(d.base) != d.base or d.base == "/":
                raise ConfigurationError(
                    f"Dashboard '{d.key}' has a non-canonical base path '{d.base}'"
                )
            # Equal bases would tie in a longest-prefix match.
            if d.base in seen_bases:
                raise ConfigurationError(
                    f"Dashboards '{seen_bases[d.base]}' and '{d.key}' share base path '{d.base}'"
                )
            seen_bases[d.base] = d.key

            if not isinstance(d.requirement, Role):
                raise ConfigurationError(
                    f"Dashboard '{d.key}' requires unknown role {d.requirement!r}"
                )
            for route in d.routes:
                if normalize_path(route.href) != route.href or not is_under(route.href, d.base):
                    raise ConfigurationError(
                        f"Nav route '{route.href}' is not a canonical path under '{d.base}'"
                    )

    def __iter__(self) -> Iterator[Dashboard]:
        return iter(self._dashboards)

    def __len__(self) -> int:
        return len(self._dashboards)

    def get(self, key: str) -> Dashboard | None:
        return next((d for d in self._dashboards if d.key == key), None)

    def match(self, path: str) -> Dashboard | None:
        """Most specific dashboard owning *path*, or None for public pages."""
        hit = longest_prefix_match(path, self._by_base)
        return hit[1] if hit else None

    def accessible_to(self, role: Role) -> list[Dashboard]:
        return [d for d in self._dashboards if satisfies(role, d.requirement)]


DASHBOARDS = DashboardRegistry([
    Dashboard(
        key="affiliates",
        base="/affiliates",
        label="Affiliates",
        requirement=Role.AFFILIATE,
        routes=(
            NavRoute("/affiliates", "Dashboard", Icon.LAYOUT_DASHBOARD),
            NavRoute("/affiliates/reports", "Reports", Icon.FILE_TEXT),
            NavRoute("/affiliates/users", "Subscribers", Icon.USERS),
            NavRoute("/affiliates/settings", "Settings", Icon.SETTINGS),
        ),
    ),
    Dashboard(
        key="clinic",
        base="/clinic",
        label="Clinic",
        requirement=Role.CLINIC,
        routes=(
            NavRoute("/clinic", "Dashboard", Icon.LAYOUT_DASHBOARD),
            NavRoute("/clinic/appointments", "Appointments", Icon.CALENDAR),
            NavRoute("/clinic/schedule", "Schedule", Icon.CALENDAR_DAYS),
            NavRoute("/clinic/patients", "Patients", Icon.USERS),
            NavRoute("/clinic/settings", "Settings", Icon.SETTINGS),
        ),
    ),
    Dashboard(
        key="finance",
        base="/finance",
        label="Finance",
        requirement=Role.FINANCE,
        routes=(
            NavRoute("/finance", "Dashboard", Icon.LAYOUT_DASHBOARD),
            NavRoute("/finance/withdrawals", "Withdrawals", Icon.DOLLAR_SIGN),
            NavRoute("/finance/reports", "Reports", Icon.FILE_TEXT),
        ),
    ),
    Dashboard(
        key="support",
        base="/support",
        label="Support & Risk",
        requirement=Role.SUPPORT,
        routes=(
            NavRoute("/support", "Dashboard", Icon.LAYOUT_DASHBOARD),
            NavRoute("/support/tickets", "Tickets", Icon.MESSAGE_SQUARE),
            NavRoute("/support/users", "Users", Icon.USERS),
        ),
    ),
    Dashboard(
        key="admin",
        base="/admin",
        label="Administration",
        requirement=Role.ADMIN,
        routes=(
            NavRoute("/admin", "Dashboard", Icon.LAYOUT_DASHBOARD),
            NavRoute("/admin/users", "Users", Icon.USERS),
            NavRoute("/admin/reports", "Reports", Icon.FILE_TEXT),
            NavRoute("/admin/settings", "Settings", Icon.SETTINGS),
        ),
    ),
])


def find_matching_dashboard(path: str) -> Dashboard | None:
    return DASHBOARDS.match(path)


# Name used by area layouts.
get_current_dashboard = find_matching_dashboard


def accessible_dashboards(role: Role) -> list[Dashboard]:
    """Dashboards the role may switch to, in registry order."""
    return DASHBOARDS.accessible_to(role)
