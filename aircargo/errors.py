"""
Domain error taxonomy.

Every error carries a stable machine-readable kind, the HTTP status class a
boundary layer should map it to, and a human message.
"""

from datetime import datetime, timezone
from typing import Any, Dict


class AppError(Exception):
    """Base class for all errors surfaced by the core."""

    status_code: int = 500
    type: str = "INTERNAL_ERROR"
    title: str = "Application Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_problem(self, instance: str = None) -> Dict[str, Any]:
        """Render the error as a problem document."""
        problem = {
            "type": f"https://aircargo.dev/errors/{self.type}",
            "title": self.title,
            "status": self.status_code,
            "detail": self.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if instance:
            problem["instance"] = instance
        return problem


class ValidationError(AppError):
    """Malformed or inconsistent client input."""

    status_code = 400
    type = "VALIDATION_ERROR"
    title = "Bad Request"


class InvalidRouteFormatError(ValidationError):
    """Route id is neither ``direct-{id}`` nor ``transit-{id}-{id}``."""

    type = "INVALID_ROUTE_FORMAT"


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed from the current status."""

    type = "INVALID_TRANSITION"

    def __init__(self, current_status: Any, requested_status: Any):
        current = getattr(current_status, "value", current_status)
        requested = getattr(requested_status, "value", requested_status)
        super().__init__(f"Invalid status transition from {current} to {requested}")
        self.current_status = current_status
        self.requested_status = requested_status


class InvalidDateError(ValidationError):
    """Search date does not parse to a calendar day."""

    type = "INVALID_DATE"


class NotFoundError(AppError):
    status_code = 404
    type = "NOT_FOUND"
    title = "Not Found"

    def __init__(self, resource: str, identifier: str = None):
        message = f"{resource} not found" if identifier is None else f"{resource} not found: {identifier}"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class ConflictError(AppError):
    status_code = 409
    type = "CONFLICT"
    title = "Conflict"


class UnauthorizedError(AppError):
    status_code = 401
    type = "UNAUTHORIZED"
    title = "Unauthorized"


class InternalError(AppError):
    status_code = 500
    type = "INTERNAL_ERROR"
    title = "Internal Server Error"
