"""
Wayfarer Backend — Pipeline Assembly
======================================

What:  Installs the middleware stages on an application in order.
How:   Starlette runs the most recently added middleware first, so the
       stages are added innermost → outermost.
"""

from typing import Optional

from fastapi import FastAPI

from app.config import settings
from app.error_handlers import ErrorSupervisorMiddleware
from app.middleware.body_parser import BodyParserMiddleware
from app.middleware.cookies import CookieParserMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.parameter_pollution import ParameterPollutionMiddleware
from app.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.middleware.request_time import RequestTimeMiddleware
from app.middleware.sanitize import QueryInjectionMiddleware, XSSSanitizerMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.middleware.static_files import StaticFilesMiddleware


def install_middleware(app: FastAPI, rate_limiter: Optional[RateLimiter] = None) -> RateLimiter:
    """
    Add every pipeline stage to `app`.

    Args:
        rate_limiter: Limiter to use; a new one built from settings if None.

    Returns:
        The limiter in use, so callers (and tests) can inspect or reset it.
    """
    limiter = rate_limiter or RateLimiter(
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
    )

    # ── Innermost ─────────────────────────────────────────────────────────
    app.add_middleware(RequestTimeMiddleware)
    app.add_middleware(ParameterPollutionMiddleware, whitelist=settings.hpp_whitelist)
    app.add_middleware(XSSSanitizerMiddleware)
    app.add_middleware(QueryInjectionMiddleware)
    app.add_middleware(CookieParserMiddleware)
    app.add_middleware(BodyParserMiddleware, limit=settings.body_limit_bytes)
    app.add_middleware(RateLimitMiddleware, limiter=limiter, prefix=settings.rate_limit_prefix)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorSupervisorMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(StaticFilesMiddleware, directory=settings.public_dir)
    # ── Outermost ─────────────────────────────────────────────────────────

    return limiter
