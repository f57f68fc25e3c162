"""
KeepWise Backend — Health Check Route
======================================

What:  Liveness/readiness probe for load balancers and container health checks.
How:   Pings the configured note store and reports which backend and identity
       provider the instance runs with.

Status levels:
    healthy:   store reachable (HTTP 200)
    unhealthy: store unreachable or not initialized (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from keepwise import __version__
from keepwise.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Note store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    store = getattr(request.app.state, "note_store", None)
    verifier = getattr(request.app.state, "token_verifier", None)

    store_name = store.name if store is not None else "none"
    reachable = store is not None and await store.ping()
    if not reachable:
        logger.warning("Health check: note store %s unreachable", store_name)
        response.status_code = 503

    return HealthResponse(
        status="healthy" if reachable else "unhealthy",
        version=__version__,
        store=f"{store_name}:{'connected' if reachable else 'disconnected'}",
        auth_provider=verifier.provider if verifier is not None else "unknown",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
