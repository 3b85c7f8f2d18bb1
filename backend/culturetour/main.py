"""
CultureTour Backend — FastAPI Application Factory
==================================================

What:  Builds the FastAPI app for one service profile.
How:   create_app(service) mounts the routers of that profile, installs the
       middleware chain and registers the global exception handlers.
Who:   uvicorn (`uvicorn culturetour.main:app`); SERVICE_NAME picks the
       profile of the module-level `app`.

Profiles:
    gateway    every router (single-process deployment)
    auth       /api/auth, /api/users
    posts      /api/posts
    likes      /api/posts/{id}/likes, /api/posts/users/{id}/likes
    comments   /api/posts/{id}/comments
    tours      /api/tours, /api/scenes, /api/hotspots
    images     /api/images

Every profile also serves GET /health and GET /.

Error envelope:
    {"success": false, "error": <code>, "message": ..., "details": ..., "request_id": ...}
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from culturetour import __version__
from culturetour.config import settings
from culturetour.exceptions import (
    CircuitBreakerOpenError,
    CultureTourError,
    RateLimitExceededError,
)
from culturetour.middleware.logging import RequestLoggingMiddleware
from culturetour.middleware.rate_limit import RateLimitMiddleware
from culturetour.middleware.request_id import RequestIDMiddleware, request_id_var
from culturetour.routes import (
    auth,
    comments,
    health,
    hotspots,
    images,
    likes,
    posts,
    scenes,
    tours,
    users,
)

logger = logging.getLogger(__name__)

# likes before posts: /users/{id}/likes must not be taken for a post id
SERVICE_ROUTERS: Dict[str, List[APIRouter]] = {
    "auth": [auth.router, users.router],
    "posts": [posts.router],
    "likes": [likes.router],
    "comments": [comments.router],
    "tours": [tours.router, scenes.router, hotspots.router],
    "images": [images.router],
}
SERVICE_ROUTERS["gateway"] = [
    auth.router,
    users.router,
    likes.router,
    comments.router,
    posts.router,
    tours.router,
    scenes.router,
    hotspots.router,
    images.router,
]


def setup_logging() -> None:
    """
    Configure root logging once for the process.

    Format: 2026-01-15T12:00:00 [INFO] culturetour.services.post_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for noisy in ("uvicorn.access", "httpx", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("CultureTour %s-service %s starting", app.state.service_name, __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # /health keeps answering so the misconfiguration is visible
        logger.error("Configuration error: %s", str(e))

    logger.info("Listening on http://%s:%d (docs at /docs)", settings.backend_host, settings.backend_port)
    yield
    logger.info("CultureTour %s-service shutting down", app.state.service_name)


def _request_id(request: Request) -> str:
    return request_id_var.get() or getattr(request.state, "request_id", "")


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details=None,
    headers=None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "message": message,
            "details": details or None,
            "request_id": _request_id(request) or None,
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the error envelope.

        CultureTourError subclasses  their own status_code / error_code
        RequestValidationError       400 validation_error
        Exception                    500 internal_server_error (trace logged only)
    """

    @app.exception_handler(CultureTourError)
    async def handle_culturetour_error(request: Request, exc: CultureTourError):
        rid = _request_id(request)
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        elif isinstance(exc, CircuitBreakerOpenError):
            headers = {"Retry-After": str(exc.recovery_time)}

        # Upstream failures keep their diagnostic context server-side
        details = None if exc.status_code >= 500 else exc.context
        return _error_response(
            request, exc.status_code, exc.error_code, exc.message, details, headers
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path", "form")),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        first = errors[0] if errors else {"field": "", "message": "Invalid request"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        return _error_response(request, 400, "validation_error", message, {"errors": errors})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True)
        return _error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


def create_app(service: str = None) -> FastAPI:
    """
    Build the app for one service profile (defaults to SERVICE_NAME).

    Raises:
        ValueError: unknown profile name
    """
    service = service or settings.service_name
    if service not in SERVICE_ROUTERS:
        raise ValueError(f"Unknown service '{service}'. Choose from: {', '.join(sorted(SERVICE_ROUTERS))}")

    app = FastAPI(
        title=f"CultureTour {service.capitalize()} Service",
        description=(
            "Social panorama posts and virtual tours backed by Appwrite (documents, "
            "accounts) and Cloudinary (images)."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.service_name = service

    # Added innermost first; requests pass rate limit -> request id -> logging -> gzip -> CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    for router in SERVICE_ROUTERS[service]:
        app.include_router(router)

    return app


app = create_app()
