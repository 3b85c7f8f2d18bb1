"""
CultureTour Backend — Health Check Route
=========================================

What:  GET /health for health checks and GET / for a welcome message.
How:   Checks both upstreams; a breaker that is already open is reported
       without calling the upstream again.

Status levels:
    OK          Appwrite and Cloudinary reachable (HTTP 200)
    DEGRADED    Cloudinary down; reads still work (HTTP 200)
    UNHEALTHY   Appwrite down; nothing works (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from culturetour import __version__
from culturetour.schemas.common import HealthResponse
from culturetour.services.appwrite_service import document_store
from culturetour.services.circuit_breaker import CircuitBreaker
from culturetour.services.cloudinary_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _check(gateway) -> str:
    if gateway.circuit_breaker.state == CircuitBreaker.OPEN:
        return "circuit_open"
    return "available" if await gateway.health_check() else "unavailable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"model": HealthResponse}},
)
async def health_check(request: Request):
    appwrite_status = await _check(document_store)
    cloudinary_status = await _check(media_service)

    if appwrite_status != "available":
        overall = "UNHEALTHY"
    elif cloudinary_status != "available":
        overall = "DEGRADED"
    else:
        overall = "OK"
    if overall != "OK":
        logger.warning(
            "Health check %s: appwrite=%s cloudinary=%s", overall, appwrite_status, cloudinary_status
        )

    body = HealthResponse(
        status=overall,
        service=f"{request.app.state.service_name}-service",
        version=__version__,
        appwrite=appwrite_status,
        cloudinary=cloudinary_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=503 if overall == "UNHEALTHY" else 200,
        content=body.model_dump(),
    )


@router.get("/", summary="Welcome message")
async def root(request: Request):
    name = request.app.state.service_name
    return {
        "success": True,
        "message": f"Welcome to the CultureTour {name} service",
        "version": __version__,
        "docs": "/docs",
    }
