"""
Application error types.

Each error carries the HTTP status and machine-readable code the API layer
renders, so services raise domain errors and never build HTTP responses.
"""

from typing import Any


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class QuotaExceededError(AppError):
    """Daily sending limit reached. Clients should offer an upgrade, not a retry."""

    status_code = 429
    code = "QUOTA_EXCEEDED"

    def __init__(
        self,
        message: str = "Daily email limit reached",
        *,
        limit: int | None = None,
        used: int | None = None,
    ):
        super().__init__(message, {"limit": limit, "used": used})
        self.limit = limit
        self.used = used


class EmailDeliveryError(AppError):
    """The email transport rejected the message. Carries the provider's error string."""

    status_code = 502
    code = "EMAIL_DELIVERY_FAILED"

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message, {"provider": provider} if provider else None)
        self.provider = provider
