"""
NoteKeeper Backend: Health Check Route
=======================================

What:  Liveness plus dependency status for probes and monitoring.
How:   SELECT 1 against the database and the storage gateway's own probe.

Status levels:
    healthy    database and storage both fine          (200)
    degraded   storage probe failed, database fine     (200)
    unhealthy  database unreachable                    (503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from notekeeper import __version__
from notekeeper.database import engine
from notekeeper.dependencies import get_storage_gateway
from notekeeper.schemas.common import HealthResponse
from notekeeper.services.storage_base import ObjectStorageGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(
    response: Response,
    storage: ObjectStorageGateway = Depends(get_storage_gateway),
) -> HealthResponse:
    db_status = "connected"
    storage_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not await storage.health_check():
        storage_status = "unavailable"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=f"{storage.name}:{storage_status}",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
