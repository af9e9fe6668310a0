"""
Role definitions — which audiences exist and which requirements they satisfy.

Roles are NOT a ladder. affiliate, clinic, finance and support are siblings:
each one satisfies only its own requirement. Super-roles satisfy every
requirement. Today that is only ADMIN.

    affiliate   clinic   finance   support
         \\        |        |        /
                     admin

The relation is built from data (ROLES + SUPER_ROLES), so adding a role or
promoting one to a super-role is a table change, not a code change.
"""

from enum import Enum


class Role(str, Enum):
    AFFILIATE = "affiliate"
    CLINIC = "clinic"
    FINANCE = "finance"
    SUPPORT = "support"
    ADMIN = "admin"


# A dashboard's requirement is expressed as the role it is built for.
RoleRequirement = Role

# Unknown or missing role claims land here (least-privileged audience).
DEFAULT_ROLE = Role.AFFILIATE

SUPER_ROLES: frozenset[Role] = frozenset({Role.ADMIN})

ROLE_LABELS: dict[Role, str] = {
    Role.AFFILIATE: "Affiliate",
    Role.CLINIC: "Clinic",
    Role.FINANCE: "Finance",
    Role.SUPPORT: "Support & Risk",
    Role.ADMIN: "Administrator",
}

# Retired role names still found in older identity records.
LEGACY_ROLE_ALIASES: dict[str, Role] = {
    "afiliado": Role.AFFILIATE,
    "clinica": Role.CLINIC,
    "financeiro": Role.FINANCE,
    "suporte": Role.SUPPORT,
}

_ROLE_BY_TOKEN: dict[str, Role] = {r.value: r for r in Role}


def _build_satisfaction(roles, super_roles) -> dict[Role, frozenset[Role]]:
    """requirement -> every role that satisfies it."""
    return {req: frozenset({req, *super_roles}) for req in roles}


SATISFIED_BY: dict[RoleRequirement, frozenset[Role]] = _build_satisfaction(Role, SUPER_ROLES)


def parse_role(raw: object) -> Role:
    """Return the Role named by *raw*, or DEFAULT_ROLE. Never raises."""
    if isinstance(raw, Role):
        return raw
    if isinstance(raw, str):
        role = _ROLE_BY_TOKEN.get(raw)
        if role is not None:
            return role
    return DEFAULT_ROLE


def normalize_role_claim(raw: object) -> Role:
    """parse_role(), but also accepting the retired role names."""
    if isinstance(raw, str) and raw in LEGACY_ROLE_ALIASES:
        return LEGACY_ROLE_ALIASES[raw]
    return parse_role(raw)


def satisfies(role: Role, requirement: RoleRequirement) -> bool:
    return role in SATISFIED_BY.get(requirement, SUPER_ROLES)


def has_role_access(role: Role | None, requirement: RoleRequirement) -> bool:
    """Layout-facing variant of satisfies(); a missing role never has access."""
    if role is None:
        return False
    return satisfies(role, requirement)


def role_label(role: object) -> str:
    """Human label for a role, falling back to its raw token. Never raises."""
    if isinstance(role, Role):
        return ROLE_LABELS.get(role, role.value)
    if isinstance(role, str):
        return ROLE_LABELS.get(_ROLE_BY_TOKEN.get(role), role)
    return "" if role is None else str(role)
