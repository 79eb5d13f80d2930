"""
Wayfarer Backend — Development Request Logging
================================================

What:  One access-log line per request while running in development mode.
Why:   A readable trace of traffic during local work; production relies on
       the reverse proxy's access log instead.
How:   The mode is checked on every request, not when the app is built, so
       switching ENVIRONMENT (or the setting in tests) takes effect at once.

Line format:
    GET /api/v1/tours?difficulty=easy 200 12.4ms [a1b2c3d4] from 127.0.0.1
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.middleware.request_id import request_id_var

logger = logging.getLogger("wayfarer.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log, active only when settings.is_development is true."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not settings.is_development:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            target,
            status,
            duration_ms,
            request_id_var.get(""),
            client_ip,
        )
        return response
