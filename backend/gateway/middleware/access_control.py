"""
Access control middleware — the edge check run on every request.

Legacy URLs are redirected before anything else. For dashboard areas and
auth pages the identity is looked up once, the access decision is taken and
either a redirect is returned or the request continues with the identity and
decision attached to request.state for the per-area layout check.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from gateway.access.decision import needs_identity, resolve_access
from gateway.access.identity import ANONYMOUS, IdentityProvider
from gateway.middleware.metrics import access_decisions_total

logger = logging.getLogger(__name__)


class AccessControlMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, provider: IdentityProvider):
        super().__init__(app)
        self.provider = provider

    async def dispatch(self, request: Request, call_next):
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"

        identity = ANONYMOUS
        if needs_identity(target):
            # get_identity() never raises; failures come back as ANONYMOUS.
            identity = await self.provider.get_identity(request)
            request.state.identity = identity

        decision = resolve_access(target, identity)
        access_decisions_total.labels(state=decision.state.value).inc()

        if decision.is_redirect:
            logger.info(
                "Redirecting %s -> %s (%s)",
                request.url.path, decision.location, decision.state.value,
                extra={"access_state": decision.state.value, "location": decision.location},
            )
            return RedirectResponse(decision.location, status_code=307)

        logger.debug(
            "Access %s for %s", decision.state.value, request.url.path,
            extra={"access_state": decision.state.value},
        )
        request.state.access_decision = decision
        return await call_next(request)
