"""
Wayfarer Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes logging setup, the middleware pipeline, route mounting and
       lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Imported by uvicorn (app.main:app) and by app.server for `python -m app`.
When:  Once at server startup; tests build a fresh app per test.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Pipeline (app/middleware):                          │
    │  static → security headers → request id → errors    │
    │  → dev log → rate limit → body → cookies            │
    │  → injection → xss → pollution → request time       │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────┐ ┌──────────────┐ ┌─────────────────┐ │
    │  │ views    │ │ /api/v1/...  │ │ /health         │ │
    │  └──────────┘ └──────────────┘ └─────────────────┘ │
    │  └─ catch-all 404 (last) ───────────────────────┘  │
    │                                                     │
    │  Error translation: app/error_handlers.py           │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Prove the database is reachable (startup fails otherwise)
    3. Log "Database connection successful."

    Shutdown:
    1. Dispose database engine (close all connections)
    2. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from app import __version__
from app.config import settings
from app.database import check_connection, dispose_engine
from app.error_handlers import register_exception_handlers
from app.middleware.pipeline import install_middleware
from app.middleware.rate_limit import RateLimiter
from app.routes import fallback, health, reviews, tours, users, views

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: timestamp [LEVEL] logger: message, on stdout.
    Called once at startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Wayfarer Backend starting up (%s mode)...", settings.environment)

    try:
        await check_connection()
    except Exception:
        logger.critical("Database connection failed; refusing to start.", exc_info=True)
        raise
    logger.info("Database connection successful.")
    logger.info("Server ready at http://%s:%d", settings.host, settings.port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Wayfarer Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        rate_limiter: Limiter for the /api quota; one is built from settings
                      when omitted. Tests pass their own with a fake clock.
    """
    app = FastAPI(
        title="Wayfarer API",
        description="Tours, users and reviews for the Wayfarer tour-booking site.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware Pipeline ───────────────────────────────────────────────
    app.state.rate_limiter = install_middleware(app, rate_limiter)

    # ── Exception Handlers ────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routes (catch-all last) ───────────────────────────────────────────
    app.include_router(views.router)
    app.include_router(tours.router)
    app.include_router(users.router)
    app.include_router(reviews.router)
    app.include_router(health.router)
    app.include_router(fallback.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
