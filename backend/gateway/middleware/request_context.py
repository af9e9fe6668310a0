"""
Request context middleware.

Generates or propagates X-Request-ID headers and stores the request ID and
path in ContextVars so log lines can carry them without threading the
request object through every call.
"""

import time
import logging
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_request_path_var: ContextVar[str] = ContextVar("request_path", default="")


def get_request_id() -> str:
    """Get the current request ID from context."""
    return _request_id_var.get()


def get_request_path() -> str:
    """Path of the request being served, or "" outside a request."""
    return _request_path_var.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        id_token = _request_id_var.set(request_id)
        path_token = _request_path_var.set(request.url.path)

        start_time = time.time()
        try:
            response = await call_next(request)
            duration_ms = round((time.time() - start_time) * 1000, 2)
            response.headers["X-Request-ID"] = request_id

            # Still inside the request context, so the entry carries the path.
            logger.info(
                "%s %s %s %.0fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={"duration_ms": duration_ms, "request_id": request_id},
            )
        finally:
            _request_path_var.reset(path_token)
            _request_id_var.reset(id_token)

        return response
