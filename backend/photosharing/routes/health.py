"""
PhotoSharing Backend — Health Check Route
===========================================

What:  Liveness and readiness probe for load balancers and Docker.
How:   Runs SELECT 1 through the document store. A reachable store is
       "healthy" (200); an unreachable one is "unhealthy" (503).
"""

import logging
import time

from fastapi import APIRouter, Request, Response, status

from photosharing import __version__
from photosharing.schemas.contracts import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Document store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await request.app.state.store.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("Health check: document store unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
