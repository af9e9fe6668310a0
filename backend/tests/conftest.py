"""Shared test fixtures for gateway tests."""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gateway.access.identity import ANONYMOUS, Identity, IdentityProvider, User
from gateway.access.roles import Role
from gateway.config import Settings
from gateway.main import create_app


class FakeIdentityProvider(IdentityProvider):
    """Resolves session tokens from a fixed table.

    "unreachable" simulates an outage, "buggy" an unexpected provider error.
    """

    backend = "fake"

    def __init__(self, identities: dict[str, Identity]):
        super().__init__(cookie_name="sb-access-token")
        self.identities = identities
        self.lookups = 0

    async def _lookup(self, token: str) -> Identity:
        self.lookups += 1
        if token == "unreachable":
            raise httpx.ConnectError("identity service down")
        if token == "buggy":
            raise RuntimeError("provider bug")
        return self.identities.get(token, ANONYMOUS)


class FakeAdminClient:
    def __init__(self):
        self.calls: list[tuple[str, Role]] = []
        self.fail = False

    async def set_role(self, user_id: str, role: Role) -> dict:
        if self.fail:
            request = httpx.Request("PUT", f"http://identity.test/auth/v1/admin/users/{user_id}")
            raise httpx.HTTPStatusError("boom", request=request, response=httpx.Response(500, request=request))
        self.calls.append((user_id, role))
        return {"id": user_id, "email": f"{user_id}@livvay.test", "app_metadata": {"role": role.value}}

    async def aclose(self) -> None:
        return None


def make_identity(user_id: str, role_claim) -> Identity:
    return Identity(user=User(id=user_id, email=f"{user_id}@livvay.test"), role_claim=role_claim)


IDENTITIES = {
    "affiliate-token": make_identity("u-affiliate", "affiliate"),
    "clinic-token": make_identity("u-clinic", "clinic"),
    "finance-token": make_identity("u-finance", "finance"),
    "support-token": make_identity("u-support", "support"),
    "admin-token": make_identity("u-admin", "admin"),
    "legacy-finance-token": make_identity("u-old-finance", "financeiro"),
    "no-role-token": make_identity("u-norole", None),
    "bad-role-token": make_identity("u-badrole", {"role": "admin"}),
}

TOKENS = {
    Role.AFFILIATE: "affiliate-token",
    Role.CLINIC: "clinic-token",
    Role.FINANCE: "finance-token",
    Role.SUPPORT: "support-token",
    Role.ADMIN: "admin-token",
}


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider(dict(IDENTITIES))


@pytest.fixture
def admin_client() -> FakeAdminClient:
    return FakeAdminClient()


@pytest.fixture
def app(provider, admin_client):
    cfg = Settings(environment="test", rate_limit_enabled=False, log_format="text")
    return create_app(cfg, identity_provider=provider, admin_client=admin_client)


@pytest.fixture
def make_client(app):
    """Build an HTTP client, optionally carrying a session cookie."""
    def _make(token: str | None = None) -> AsyncClient:
        cookies = {"sb-access-token": token} if token else None
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", cookies=cookies)
    return _make


@pytest_asyncio.fixture
async def anon_client(make_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with no session."""
    async with make_client() as client:
        yield client


@pytest_asyncio.fixture
async def admin_http(make_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client logged in as admin."""
    async with make_client(TOKENS[Role.ADMIN]) as client:
        yield client
