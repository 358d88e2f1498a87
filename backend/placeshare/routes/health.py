"""
PlaceShare Backend — Health Check Route
=========================================

What:  Health endpoint for monitoring and load balancer probes.
How:   Pings the configured store and reports whether the geocoder has an
       API key.

Status levels:
    - healthy:   store reachable, geocoder configured (HTTP 200)
    - degraded:  store reachable, geocoder unconfigured; reads work, creates fail
    - unhealthy: store unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from placeshare import __version__
from placeshare.dependencies import get_geocoder, get_store
from placeshare.schemas.place import HealthResponse
from placeshare.services.geocoder_base import Geocoder
from placeshare.store import PlaceStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Store unreachable", "model": HealthResponse}},
)
async def health_check(
    store: PlaceStore = Depends(get_store),
    geocoder: Geocoder = Depends(get_geocoder),
):
    store_status = "connected"
    geocoder_status = "configured"
    overall = "healthy"

    if not await store.ping():
        store_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: store unreachable")

    if not geocoder.is_configured():
        geocoder_status = "unconfigured"
        if overall == "healthy":
            overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        store=store_status,
        geocoder=geocoder_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
