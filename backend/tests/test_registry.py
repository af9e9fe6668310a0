"""Tests for path matching, the dashboard registry, legacy redirects and defaults."""

import pytest

from gateway.access.defaults import DEFAULT_DASHBOARDS, default_dashboard, nav_links_for_role, validate_routing
from gateway.access.errors import ConfigurationError
from gateway.access.legacy import LEGACY_REDIRECTS, LegacyRedirectMap, find_legacy_redirect
from gateway.access.paths import is_safe_next, normalize_path, safe_next
from gateway.access.registry import (
    DASHBOARDS,
    Dashboard,
    DashboardRegistry,
    Icon,
    NavRoute,
    accessible_dashboards,
    find_matching_dashboard,
)
from gateway.access.roles import DEFAULT_ROLE, Role, satisfies


# ── Paths ────────────────────────────────────────────────────────────────────

class TestPaths:
    @pytest.mark.parametrize("raw,expected", [
        ("/clinic", "/clinic"),
        ("/clinic/", "/clinic"),
        ("/clinic///settings//", "/clinic/settings"),
        ("/clinic/settings?tab=1", "/clinic/settings"),
        ("/clinic#top", "/clinic"),
        ("clinic", "/clinic"),
        ("", "/"),
        ("/", "/"),
        ("//", "/"),
    ])
    def test_normalize_path(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize("value", ["/finance", "/", "/clinic/settings?tab=2", "/a//b"])
    def test_safe_next_accepted(self, value):
        assert is_safe_next(value)
        assert safe_next(value, "/affiliates") == value

    @pytest.mark.parametrize("value", [
        None, "", "finance", "//evil.com", "//evil.com/finance", "https://evil.com",
        "javascript:alert(1)", "/\\evil.com", 42,
    ])
    def test_safe_next_rejected(self, value):
        assert not is_safe_next(value)
        assert safe_next(value, "/affiliates") == "/affiliates"


# ── Dashboard registry ───────────────────────────────────────────────────────

def _dash(key, base, requirement=Role.AFFILIATE, routes=()):
    return Dashboard(key=key, base=base, label=key.title(), requirement=requirement, routes=routes)


class TestFindMatchingDashboard:
    @pytest.mark.parametrize("path,key", [
        ("/affiliates", "affiliates"),
        ("/affiliates/settings/codes", "affiliates"),
        ("/clinic", "clinic"),
        ("/clinic/", "clinic"),
        ("/clinic/settings/security", "clinic"),
        ("/clinic/patients/42?tab=weight", "clinic"),
        ("/finance", "finance"),
        ("/support/tickets", "support"),
        ("/admin/users", "admin"),
    ])
    def test_owned_paths(self, path, key):
        assert find_matching_dashboard(path).key == key

    @pytest.mark.parametrize("path", [
        "/", "/blog/post", "/clinical", "/Clinic", "/financeiro-info", "/api/admin/users/1/role",
        "/auth/login", "/afiliados",
    ])
    def test_public_paths(self, path):
        assert find_matching_dashboard(path) is None

    def test_longest_prefix_wins_regardless_of_order(self):
        parent = _dash("clinic", "/clinic", Role.CLINIC)
        child = _dash("clinic-settings", "/clinic/settings", Role.ADMIN)
        for order in ([parent, child], [child, parent]):
            registry = DashboardRegistry(order)
            assert registry.match("/clinic/settings/security").key == "clinic-settings"
            assert registry.match("/clinic/settings").key == "clinic-settings"
            assert registry.match("/clinic/patients").key == "clinic"
            assert registry.match("/clinic/settingsx").key == "clinic"

    def test_registered_nested_dashboards_resolve_to_the_deeper_one(self):
        dashboards = list(DASHBOARDS)
        for outer in dashboards:
            for inner in dashboards:
                if inner.base.startswith(outer.base + "/"):
                    assert find_matching_dashboard(inner.base + "/x").key == inner.key


class TestRegistryValidation:
    def test_duplicate_base_is_rejected(self):
        with pytest.raises(ConfigurationError, match="share base path"):
            DashboardRegistry([_dash("a", "/area"), _dash("b", "/area")])

    def test_duplicate_key_is_rejected(self):
        with pytest.raises(ConfigurationError, match="Duplicate dashboard key"):
            DashboardRegistry([_dash("a", "/one"), _dash("a", "/two")])

    @pytest.mark.parametrize("base", ["/", "area", "/area/", "/a//b"])
    def test_non_canonical_base_is_rejected(self, base):
        with pytest.raises(ConfigurationError, match="non-canonical"):
            DashboardRegistry([_dash("a", base)])

    def test_nav_route_outside_dashboard_is_rejected(self):
        with pytest.raises(ConfigurationError, match="not a canonical path under"):
            DashboardRegistry([_dash("a", "/area", routes=(NavRoute("/elsewhere", "X"),))])

    def test_unknown_requirement_is_rejected(self):
        with pytest.raises(ConfigurationError, match="unknown role"):
            DashboardRegistry([_dash("a", "/area", requirement="owner")])


class TestNavigation:
    def test_active_entry(self):
        clinic = DASHBOARDS.get("clinic")
        items = {i.href: i for i in clinic.navigation("/clinic/patients/42")}
        assert items["/clinic/patients"].active
        assert not items["/clinic"].active
        assert not items["/clinic/schedule"].active

    def test_base_entry_only_active_on_exact_match(self):
        clinic = DASHBOARDS.get("clinic")
        items = {i.href: i for i in clinic.navigation("/clinic/")}
        assert items["/clinic"].active
        assert sum(i.active for i in items.values()) == 1

    def test_missing_icon_renders_dashboard_icon(self):
        dash = _dash("a", "/area", routes=(NavRoute("/area", "Home"),))
        assert dash.navigation("/area")[0].icon is Icon.LAYOUT_DASHBOARD

    def test_accessible_dashboards(self):
        assert [d.key for d in accessible_dashboards(Role.ADMIN)] == [d.key for d in DASHBOARDS]
        assert [d.key for d in accessible_dashboards(Role.FINANCE)] == ["finance"]

    def test_nav_links_for_role(self):
        assert nav_links_for_role(Role.SUPPORT)[0].href == "/support"
        assert nav_links_for_role(None)[0].href == "/affiliates"


# ── Legacy redirects ─────────────────────────────────────────────────────────

class TestLegacyRedirects:
    @pytest.mark.parametrize("path,expected", [
        ("/afiliados", "/affiliates"),
        ("/afiliados/", "/affiliates"),
        ("/afiliados/settings/links", "/affiliates/settings/links"),
        ("/clinica", "/clinic"),
        ("/financeiro", "/finance"),
        ("/suporte/tickets", "/support/tickets"),
    ])
    def test_redirects(self, path, expected):
        assert find_legacy_redirect(path) == expected

    @pytest.mark.parametrize("path", ["/affiliates", "/afiliadosx", "/", "/admin"])
    def test_no_redirect(self, path):
        assert find_legacy_redirect(path) is None

    def test_no_target_is_itself_a_legacy_source(self):
        for _, target in LEGACY_REDIRECTS:
            assert find_legacy_redirect(target) is None
            assert find_legacy_redirect(target + "/deep/link") is None

    def test_chained_mapping_is_rejected(self):
        with pytest.raises(ConfigurationError, match="overlaps legacy source"):
            LegacyRedirectMap({"/old": "/older", "/older": "/new"})

    def test_self_nested_mapping_is_rejected(self):
        with pytest.raises(ConfigurationError, match="overlaps legacy source"):
            LegacyRedirectMap({"/old": "/old/new"})

    @pytest.mark.parametrize("target", ["//evil.com", "https://evil.com", "new"])
    def test_offsite_target_is_rejected(self, target):
        with pytest.raises(ConfigurationError, match="same-origin"):
            LegacyRedirectMap({"/old": target})

    def test_longest_source_wins(self):
        table = LegacyRedirectMap({"/old": "/new", "/old/reports": "/reports"})
        assert table.resolve("/old/reports/2024") == "/reports/2024"
        assert table.resolve("/old/other") == "/new/other"


# ── Default destinations ─────────────────────────────────────────────────────

class TestDefaultDashboard:
    @pytest.mark.parametrize("role", list(Role))
    def test_default_is_reachable_by_its_role(self, role):
        dashboard = find_matching_dashboard(default_dashboard(role))
        assert dashboard is not None
        assert satisfies(role, dashboard.requirement)

    def test_total_over_missing_role(self):
        assert default_dashboard(None) == DEFAULT_DASHBOARDS[DEFAULT_ROLE]

    def test_defaults_are_not_legacy_sources(self):
        for role in Role:
            assert find_legacy_redirect(default_dashboard(role)) is None

    def test_shipped_configuration_validates(self):
        validate_routing()

    def test_missing_default_is_fatal(self, monkeypatch):
        patched = dict(DEFAULT_DASHBOARDS)
        del patched[Role.SUPPORT]
        monkeypatch.setattr("gateway.access.defaults.DEFAULT_DASHBOARDS", patched)
        with pytest.raises(ConfigurationError, match="no default dashboard"):
            validate_routing()

    def test_default_the_role_cannot_enter_is_fatal(self, monkeypatch):
        patched = dict(DEFAULT_DASHBOARDS)
        patched[Role.FINANCE] = "/admin"
        monkeypatch.setattr("gateway.access.defaults.DEFAULT_DASHBOARDS", patched)
        with pytest.raises(ConfigurationError, match="cannot enter its own default dashboard"):
            validate_routing()
