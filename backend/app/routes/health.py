"""
Wayfarer Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   The only critical dependency is the database; without it no route
       beyond static assets and the login page can work.
How:   Round-trips SELECT 1 and reports uptime and version.

Status levels:
    healthy    database reachable (HTTP 200)
    unhealthy  database unreachable (HTTP 503, stop routing traffic)

Lives outside /api, so it is never rate limited.
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import settings
from app.database import check_connection
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check():
    db_status = "connected"
    overall = "healthy"
    try:
        await check_connection()
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    body = HealthResponse(
        status=overall,
        version=__version__,
        environment=settings.environment,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=200 if overall == "healthy" else 503,
        content=body.model_dump(),
    )
