"""
CultureTour Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every error scenario the API reports.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) map them to
       structured JSON error responses with the right HTTP status code.
Who:   Raised by services, gateways and auth dependencies; caught by handlers.

Exception Hierarchy:
    CultureTourError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── UpstreamServiceError     → 502 Bad Gateway (Appwrite failed)
    ├── MediaStorageError        → 502 Bad Gateway (Cloudinary failed)
    └── CircuitBreakerOpenError  → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class CultureTourError(Exception):
    """
    Base exception for all CultureTour application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional details returned under "details"
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CultureTourError):
    """
    Raised when client input fails a business rule.

    HTTP: 400 Bad Request. Schema-level problems are reported by FastAPI's
    own request validation and reshaped into the same envelope.

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Caption must be less than 2000 characters",
            "details": {"field": "caption"}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(CultureTourError):
    """Missing, invalid or expired credentials. HTTP 401."""

    status_code = 401
    error_code = "not_authenticated"

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(CultureTourError):
    """
    Authenticated, but not allowed to touch this resource.

    HTTP: 403 Forbidden. Raised by ownership checks (authorId != caller)
    and by role restrictions.
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Not authorized, insufficient permissions",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CultureTourError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404 Not Found. The gateway converts Appwrite/Cloudinary 404s into
    this exception so services can catch "missing" without SDK imports.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(CultureTourError):
    """The resource already exists (e.g. duplicate email). HTTP 409."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(CultureTourError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP: 429 Too Many Requests, with a Retry-After header.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class UpstreamServiceError(CultureTourError):
    """
    Raised when Appwrite fails after all retries.

    HTTP: 502 Bad Gateway. The message is generic; the SDK error is kept
    in context and logged server-side.
    """

    status_code = 502
    error_code = "upstream_error"

    def __init__(
        self,
        message: str = "The data service is temporarily unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MediaStorageError(CultureTourError):
    """Raised when a Cloudinary upload, lookup or delete fails. HTTP 502."""

    status_code = 502
    error_code = "media_error"

    def __init__(
        self,
        message: str = "Image storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(CultureTourError):
    """
    Raised when an upstream circuit breaker is OPEN.

    HTTP: 503 Service Unavailable, with a Retry-After header.

    How the circuit breaker works:
        CLOSED (normal) → transient failures increment a counter
        → threshold reached → OPEN (reject calls for recovery_timeout)
        → timeout elapsed → HALF-OPEN (allow one test call)
        → test succeeds → CLOSED; test fails → OPEN again
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 30,
        service: str = "upstream",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"The {service} service is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        ctx["service"] = service
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
