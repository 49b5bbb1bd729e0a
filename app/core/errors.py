"""Typed domain errors. Each maps to one HTTP status at the API boundary."""

from typing import Any


class AppError(Exception):
    """Base class for all expected failures raised by services."""

    status_code = 500
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.errors = errors
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class Unauthorized(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_code = "UNAUTHORIZED"


class Forbidden(AppError):
    """Authenticated, but the role does not allow the operation."""

    status_code = 403
    default_code = "INSUFFICIENT_PERMISSIONS"


class NotFound(AppError):
    status_code = 404
    default_code = "NOT_FOUND"


class Conflict(AppError):
    """Duplicate email or a stale state transition."""

    status_code = 409
    default_code = "CONFLICT"
