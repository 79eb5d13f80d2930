"""
Wayfarer Backend — Rate Limiting
==================================

What:  Per-client request quota on every path under the API prefix.
Why:   Protects the API from brute force and scraping; pages and static
       assets stay unlimited.
How:   RateLimiter keeps a fixed window per client address:
       client → (window start, request count). The first request after the
       window elapses starts a fresh window. RateLimitMiddleware asks the
       limiter for a decision and either forwards or rejects with 429.

Defaults:
    100 requests per client per 3600 seconds under /api.

The clock and the store are constructor arguments, so tests can advance
time by hand and inspect counters without sleeping.

Production Upgrade Path:
    The store is process-local. With several workers, pass a store shared
    between them (e.g. a Redis-backed mapping) or limit at the proxy.
"""

import logging
import math
import time
from typing import Callable, Dict, MutableMapping, NamedTuple, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.error_handlers import render_error
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Entries are pruned once the store grows past this many clients
CLEANUP_THRESHOLD = 1000


class RateLimitDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the client's window resets


class RateLimiter:
    """
    Fixed-window counter keyed by client address.

    Args:
        limit:   Requests allowed per window.
        window:  Window length in seconds.
        clock:   Returns the current time in seconds (monotonic by default).
        store:   Mapping client → (window_start, count); a dict by default.
    """

    def __init__(
        self,
        limit: int = 100,
        window: int = 3600,
        clock: Callable[[], float] = time.monotonic,
        store: Optional[MutableMapping[str, Tuple[float, int]]] = None,
    ):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.store: MutableMapping[str, Tuple[float, int]] = {} if store is None else store

    def hit(self, client: str) -> RateLimitDecision:
        """Count one request from `client` and decide whether it may proceed."""
        now = self.clock()
        window_start, count = self.store.get(client, (now, 0))
        if now - window_start >= self.window:
            window_start, count = now, 0

        reset_after = max(1, math.ceil(window_start + self.window - now))
        if count >= self.limit:
            return RateLimitDecision(False, self.limit, 0, reset_after)

        count += 1
        self.store[client] = (window_start, count)
        if len(self.store) > CLEANUP_THRESHOLD:
            self._cleanup(now)
        return RateLimitDecision(True, self.limit, self.limit - count, reset_after)

    def reset(self) -> None:
        self.store.clear()

    def _cleanup(self, now: float) -> None:
        """Drop clients whose window has already elapsed."""
        expired = [c for c, (start, _) in self.store.items() if now - start >= self.window]
        for client in expired:
            del self.store[client]
        if expired:
            logger.debug("Cleaned up %d expired rate limit entries", len(expired))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a RateLimiter to requests under `prefix`."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, prefix: str = "/api"):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix.rstrip("/")

    def _applies_to(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._applies_to(request.url.path):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        decision = self.limiter.hit(client_ip)
        headers: Dict[str, str] = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(decision.reset_after),
        }

        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                decision.limit,
                self.limiter.window,
            )
            response = render_error(request, RateLimitExceededError(retry_after=decision.reset_after))
        else:
            response = await call_next(request)

        response.headers.update(headers)
        return response
