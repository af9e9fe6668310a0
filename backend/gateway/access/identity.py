"""
Identity — who is asking, read fresh from the session on every request.

The identity provider is an external collaborator. Whatever goes wrong while
asking it (timeout, transport error, bad status, malformed token or body)
the answer is the anonymous identity: the access decision stays total and
the caller is simply treated as logged out. Lookups are never retried here;
retry policy belongs to the HTTP client, not to request routing.

Nothing in this module caches identities between requests.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import httpx
from jose import JWTError, jwt

from gateway.access.roles import Role, normalize_role_claim
from gateway.config import Settings
from gateway.middleware.metrics import identity_lookup_duration_seconds, identity_lookups_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    id: str
    email: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email}


@dataclass(frozen=True)
class Identity:
    user: User | None = None
    role_claim: Any = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Role | None:
        """Normalised role; None only when nobody is logged in."""
        if self.user is None:
            return None
        return normalize_role_claim(self.role_claim)


ANONYMOUS = Identity()


class RequestLike(Protocol):
    cookies: Mapping[str, str]
    headers: Mapping[str, str]


def extract_access_token(request: RequestLike, cookie_name: str) -> str | None:
    """Session cookie first, then an Authorization: Bearer header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


class IdentityProvider(ABC):
    """Answers "who is the current user, and what role do they claim"."""

    backend = "base"

    def __init__(self, cookie_name: str):
        self.cookie_name = cookie_name

    async def get_identity(self, request: RequestLike) -> Identity:
        """Never raises. Failures degrade to ANONYMOUS."""
        token = extract_access_token(request, self.cookie_name)
        if not token:
            identity_lookups_total.labels(backend=self.backend, outcome="no_session").inc()
            return ANONYMOUS

        start = time.time()
        try:
            identity = await self._lookup(token)
        except (httpx.HTTPError, JWTError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Identity lookup failed (%s): %s", type(exc).__name__, exc)
            identity_lookups_total.labels(backend=self.backend, outcome="error").inc()
            return ANONYMOUS
        except Exception:
            logger.exception("Identity provider raised unexpectedly; treating request as anonymous")
            identity_lookups_total.labels(backend=self.backend, outcome="error").inc()
            return ANONYMOUS
        finally:
            identity_lookup_duration_seconds.labels(backend=self.backend).observe(time.time() - start)

        outcome = "authenticated" if identity.is_authenticated else "rejected"
        identity_lookups_total.labels(backend=self.backend, outcome=outcome).inc()
        return identity

    @abstractmethod
    async def _lookup(self, token: str) -> Identity:
        ...

    async def ping(self) -> bool:
        """Whether the provider can currently answer lookups."""
        return True

    async def aclose(self) -> None:
        return None


def _identity_from_claims(user_id: Any, email: Any, app_metadata: Any) -> Identity:
    if not user_id:
        return ANONYMOUS
    role_claim = app_metadata.get("role") if isinstance(app_metadata, dict) else None
    return Identity(
        user=User(id=str(user_id), email=email if isinstance(email, str) else None),
        role_claim=role_claim,
    )


class SupabaseIdentityProvider(IdentityProvider):
    """Asks the identity service's /auth/v1/user endpoint about the session token."""

    backend = "supabase"

    def __init__(self, base_url: str, anon_key: str, cookie_name: str,
                 timeout: float = 2.0, client: httpx.AsyncClient | None = None):
        super().__init__(cookie_name)
        self.anon_key = anon_key
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def _lookup(self, token: str) -> Identity:
        resp = await self._client.get(
            "/auth/v1/user",
            headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
        )
        if resp.status_code in (401, 403):
            logger.debug("Identity service rejected session token (%s)", resp.status_code)
            return ANONYMOUS
        resp.raise_for_status()

        body = resp.json()
        if not isinstance(body, dict):
            raise ValueError("identity service returned a non-object body")
        return _identity_from_claims(body.get("id"), body.get("email"), body.get("app_metadata"))

    async def ping(self) -> bool:
        resp = await self._client.get("/auth/v1/health", headers={"apikey": self.anon_key})
        return resp.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()


class JWTIdentityProvider(IdentityProvider):
    """Verifies the session token locally with the shared signing secret."""

    backend = "jwt"
    ALGORITHM = "HS256"

    def __init__(self, secret: str, cookie_name: str, audience: str = "authenticated"):
        super().__init__(cookie_name)
        self.secret = secret
        self.audience = audience

    async def _lookup(self, token: str) -> Identity:
        claims = jwt.decode(token, self.secret, algorithms=[self.ALGORITHM], audience=self.audience)
        return _identity_from_claims(claims.get("sub"), claims.get("email"), claims.get("app_metadata"))


class SupabaseAdminClient:
    """Service-role client for writing a user's role into app_metadata."""

    def __init__(self, base_url: str, service_role_key: str,
                 timeout: float = 5.0, client: httpx.AsyncClient | None = None):
        self.service_role_key = service_role_key
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def set_role(self, user_id: str, role: Role) -> dict:
        """Raises httpx.HTTPError when the identity service refuses the update."""
        resp = await self._client.put(
            f"/auth/v1/admin/users/{user_id}",
            headers={
                "apikey": self.service_role_key,
                "Authorization": f"Bearer {self.service_role_key}",
            },
            json={"app_metadata": {"role": role.value}},
        )
        resp.raise_for_status()
        return resp.json()

    async def aclose(self) -> None:
        await self._client.aclose()


def build_identity_provider(cfg: Settings) -> IdentityProvider:
    if cfg.identity_backend == "jwt":
        return JWTIdentityProvider(cfg.supabase_jwt_secret, cfg.session_cookie_name, cfg.jwt_audience)
    return SupabaseIdentityProvider(
        cfg.supabase_url,
        cfg.supabase_anon_key,
        cfg.session_cookie_name,
        timeout=cfg.identity_timeout_seconds,
    )


def build_admin_client(cfg: Settings) -> SupabaseAdminClient:
    return SupabaseAdminClient(cfg.supabase_url, cfg.supabase_service_role_key)
