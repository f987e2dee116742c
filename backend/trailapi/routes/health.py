"""
Trail API Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   Load balancers route away from instances whose store is unreachable.
How:   Asks the entity store to probe itself (SELECT 1 on the SQL backend).

Status levels:
    - healthy:   store reachable (or in-memory)
    - unhealthy: store probe failed
"""

import logging
import time

from fastapi import APIRouter, Depends

from trailapi import __version__
from trailapi.config import settings
from trailapi.dependencies import get_entity_store
from trailapi.schemas.resources import HealthResponse
from trailapi.services.store_base import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level: set once when the app imports its routes
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(store: EntityStore = Depends(get_entity_store)) -> HealthResponse:
    if settings.store_backend == "memory":
        store_status = "memory"
        overall = "healthy"
    elif await store.health_check():
        store_status = "connected"
        overall = "healthy"
    else:
        store_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: entity store unreachable")

    return HealthResponse(
        status=overall,
        version=__version__,
        store=store_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
