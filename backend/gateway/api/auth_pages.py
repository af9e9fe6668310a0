"""
Auth pages — login, sign-up and the flow pages that finish an auth round-trip.

Forms and credential checks live in the identity service; these handlers
only describe the page and carry the guarded `next` destination along. The
edge middleware has already sent logged-in callers away from the form pages,
so anything that reaches them is anonymous.

/auth/confirm and /auth/error are reachable with or without a session.
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from gateway.access.defaults import default_dashboard
from gateway.access.identity import Identity
from gateway.access.paths import is_safe_next
from gateway.api.deps import get_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

ERROR_PATH = "/auth/error"
INVALID_LINK_MESSAGE = "Invalid confirmation link"

AUTH_FORM_PAGES = {
    "login": "Log in",
    "sign-up": "Create account",
    "sign-up-success": "Check your email",
    "forgot-password": "Reset password",
    "update-password": "Choose a new password",
}


def _page(name: str, next_param: str | None) -> dict:
    return {
        "page": name,
        "title": AUTH_FORM_PAGES[name],
        # A rejected value is dropped without comment.
        "next": next_param if is_safe_next(next_param) else None,
    }


@router.get("/login")
async def login_page(next: str | None = None):
    return _page("login", next)


@router.get("/sign-up")
async def sign_up_page(next: str | None = None):
    return _page("sign-up", next)


@router.get("/sign-up-success")
async def sign_up_success_page():
    return _page("sign-up-success", None)


@router.get("/forgot-password")
async def forgot_password_page():
    return _page("forgot-password", None)


@router.get("/update-password")
async def update_password_page():
    return _page("update-password", None)


@router.get("/error")
async def error_page(error: str | None = None):
    return {"page": "error", "title": "Something went wrong", "error": error or "Unknown error"}


def _error_redirect(message: str) -> RedirectResponse:
    return RedirectResponse(f"{ERROR_PATH}?{urlencode({'error': message})}", status_code=307)


@router.get("/confirm")
async def confirm(next: str | None = None, error: str | None = None,
                  error_description: str | None = None,
                  code: str | None = None, token_hash: str | None = None,
                  type: str | None = None,
                  identity: Identity = Depends(get_identity)):
    """
    Landing point of email links: forward to the guarded destination or the error page.

    The code or token hash itself is verified by the identity service; a link
    carrying neither is rejected here.
    """
    if error:
        logger.info("Auth flow returned an error: %s", error)
        return _error_redirect(error_description or error)

    if not code and not (token_hash and type):
        logger.info("Confirmation link without code or token hash")
        return _error_redirect(INVALID_LINK_MESSAGE)

    fallback = default_dashboard(identity.role)
    destination = next if is_safe_next(next) else fallback
    return RedirectResponse(destination, status_code=307)
