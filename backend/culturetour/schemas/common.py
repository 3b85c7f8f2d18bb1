"""
CultureTour Backend — Shared Response Schemas
==============================================

What:  The success envelope, the error envelope and the health payload.
How:   Every route returns ApiResponse; every exception handler returns
       ErrorResponse. Resource payloads inside `data` are the Appwrite
       documents (with `$id`, `$createdAt`, ...) after JSON fields are
       decoded, so they are typed loosely as dicts.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies use camelCase keys on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel):
    """
    Success envelope.

    Example:
        {"success": true, "message": "Post created successfully", "data": {"post": {...}}}
    """

    success: bool = Field(default=True)
    message: Optional[str] = Field(default=None, description="Human-readable outcome")
    data: Any = Field(default=None, description="Resource payload")


def ok(data: Any = None, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(success=True, message=message, data=data)


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "success": false,
            "error": "forbidden",
            "message": "Unauthorized: You can only update your own posts",
            "details": {},
            "request_id": "a1b2c3d4"
        }
    """

    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer health checks."""

    status: str = Field(description="OK, DEGRADED or UNHEALTHY")
    service: str = Field(description="Service profile name, e.g. posts-service")
    version: str = Field(description="Application version")
    appwrite: str = Field(description="available, unavailable or circuit_open")
    cloudinary: str = Field(description="available, unavailable or circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
