"""
Per-request context and access logging.

Every request gets a short request id (taken from ``X-Request-ID`` when the
caller sends one) and, for the cloud-function style endpoint, the
``X-Function-Name`` it asked for. Both are bound into structlog's context so
the onboarding logs of that request carry them.
"""

import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

FUNCTION_ROUTE = "/createUser"


def function_name(request: Request) -> Optional[str]:
    """Operation requested on the header-routed endpoint, if this is one."""
    if request.url.path != FUNCTION_ROUTE:
        return None
    return request.headers.get("x-function-name") or "createUser"


def _log_method(status_code: int):
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id}
        function = function_name(request)
        if function:
            context["function"] = function
        structlog.contextvars.bind_contextvars(**context)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response
        finally:
            _log_method(status_code)(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
