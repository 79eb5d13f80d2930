"""Stamps request.state.request_time with the arrival time (ISO-8601, UTC)."""

from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class RequestTimeMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.request_time = datetime.now(timezone.utc).isoformat()
        return await call_next(request)
