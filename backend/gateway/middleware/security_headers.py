"""
Security headers middleware.

Every response gets the standard browser hardening headers. Responses whose
content depends on the session (dashboard areas, auth pages and every access
redirect) are also marked private and uncacheable, so a shared cache can never
replay one caller's dashboard or redirect to another.
"""

from starlette.datastructures import MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from gateway.access.decision import is_auth_page
from gateway.access.registry import find_matching_dashboard

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

SESSION_BOUND_CACHE_CONTROL = "private, no-store"
SESSION_VARY = ("Cookie", "Authorization")


def add_vary(headers: MutableHeaders, names: tuple[str, ...]) -> None:
    """Merge *names* into Vary, keeping whatever inner layers (CORS) already put there."""
    merged: dict[str, str] = {}
    for value in [*headers.get("Vary", "").split(","), *names]:
        value = value.strip()
        if value:
            merged.setdefault(value.lower(), value)
    headers["Vary"] = ", ".join(merged.values())


def is_session_bound(path: str, status_code: int) -> bool:
    if 300 <= status_code < 400:
        return True
    return find_matching_dashboard(path) is not None or is_auth_page(path)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if is_session_bound(request.url.path, response.status_code):
            response.headers.setdefault("Cache-Control", SESSION_BOUND_CACHE_CONTROL)
            add_vary(response.headers, SESSION_VARY)
        return response
