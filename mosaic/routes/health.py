"""
Mosaic Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database and the configured storage backend, returns status.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   database and storage operational
    - degraded:  storage unreachable (uploads and exports fail, browsing works)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy import text

from mosaic import __version__
from mosaic.database import engine
from mosaic.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service, its database and "
        "its storage backend."
    ),
)
async def health_check(request: Request) -> HealthResponse:
    """
    Probe the database with SELECT 1 and ask the storage backend whether it
    can currently accept writes.
    """
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    storage = request.app.state.storage
    try:
        storage_ok = await storage.health_check()
    except Exception as e:
        storage_ok = False
        logger.warning("Health check: storage '%s' unreachable: %s", storage.name, str(e))

    if not storage_ok and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=f"{storage.name}: {'available' if storage_ok else 'unavailable'}",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
