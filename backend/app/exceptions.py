"""
Wayfarer Backend — Custom Exception Hierarchy
===============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Every failure that reaches a client must carry a message, an HTTP status
       and an operational flag, so the error translation layer can decide how
       much to expose.
How:   Each exception class carries a message, status code and optional context.
       The error translation layer (app/error_handlers.py) renders them.
Who:   Raised by services, routes and middleware stages.

Exception Hierarchy:
    WayfarerError (base)
    ├── ValidationError          → 400 Bad Request (field errors attached)
    ├── InvalidFieldValueError   → 400 Bad Request (malformed id / cast)
    ├── DuplicateFieldError      → 400 Bad Request (unique field taken)
    ├── MalformedBodyError       → 400 Bad Request (body could not be decoded)
    ├── NotFoundError            → 404 Not Found
    ├── RouteNotFoundError       → 404 Not Found (no route for path)
    ├── PayloadTooLargeError     → 413 Payload Too Large
    └── RateLimitExceededError   → 429 Too Many Requests

Operational vs programming failures:
    Every WayfarerError is operational (expected, safe to show). Any other
    exception is a programming failure and is masked in production.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional


class FieldError(NamedTuple):
    """One failed rule on one field of a candidate document."""
    field: str
    message: str


class WayfarerError(Exception):
    """
    Base exception for all Wayfarer application errors.

    Attributes:
        message:         User-facing error description (safe to return)
        status_code:     HTTP status for the response
        is_operational:  True for anticipated, user-facing conditions
        context:         Additional debug info (shown only in development)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        is_operational: bool = True,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        self.is_operational = is_operational
        super().__init__(self.message)

    @property
    def status(self) -> str:
        """JSend status: 'fail' for client faults, 'error' for server faults."""
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(WayfarerError):
    """
    Raised when a candidate document fails schema or business validation.

    Example response:
        {
            "status": "fail",
            "message": "Invalid input data. Tour name must have >= 10 characters."
        }
    """

    status_code = 400

    def __init__(
        self,
        errors: Iterable[FieldError] = (),
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors: List[FieldError] = list(errors)
        if message is None:
            message = "Invalid input data. " + " ".join(e.message for e in self.errors)
        ctx = context or {}
        if self.errors:
            ctx["fields"] = {e.field: e.message for e in self.errors}
        super().__init__(message=message.strip(), context=ctx)


class InvalidFieldValueError(WayfarerError):
    """A value (typically an identifier) could not be cast to its field type."""

    status_code = 400

    def __init__(self, path: str, value: Any, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx.update(path=path, value=str(value))
        super().__init__(message=f"Invalid {path}: {value}.", context=ctx)


class DuplicateFieldError(WayfarerError):
    """A unique field received a value that another document already holds."""

    status_code = 400

    def __init__(
        self,
        value: Any,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(
            message=f"Duplicate field value: {value}. Please use another value!",
            context=ctx,
        )


class MalformedBodyError(WayfarerError):
    """The request body could not be decoded for its declared content type."""

    status_code = 400

    def __init__(self, message: str = "Request body could not be parsed."):
        super().__init__(message=message)


class NotFoundError(WayfarerError):
    """
    Raised when a requested document does not exist (or is hidden by the
    default query scope, e.g. a secret tour).
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "document",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"No {resource} found."
        if resource_id:
            message = f"No {resource} found with that ID."
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RouteNotFoundError(WayfarerError):
    """No route group matched the requested path (any HTTP method)."""

    status_code = 404

    def __init__(self, path: str):
        super().__init__(
            message=f"Unable to find {path} on this server.",
            context={"path": path},
        )


class PayloadTooLargeError(WayfarerError):
    """Request body exceeds the configured limit."""

    status_code = 413

    def __init__(self, limit: int):
        super().__init__(
            message=f"Request body is larger than the {limit // 1024}kb limit.",
            context={"limit_bytes": limit},
        )
        self.limit = limit


class RateLimitExceededError(WayfarerError):
    """
    Raised when a client exceeds the per-IP request quota.

    Response includes a Retry-After header with the seconds until the
    client's window resets.
    """

    status_code = 429

    def __init__(self, retry_after: int = 3600, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(
            message="Too many requests from this IP. Please try again in an hour.",
            context=ctx,
        )
        self.retry_after = retry_after
