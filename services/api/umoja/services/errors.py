"""Application errors.

Every error a caller can see is an AppError with a stable code and an HTTP
status; main.py renders them in the { "error": { code, message, detail } }
envelope. Side-effect failures never become AppErrors: they are logged where
they happen and the triggering request still succeeds.
"""

from typing import Any


class AppError(Exception):
    """Base class for caller-visible errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail


class AuthenticationError(AppError):
    """Missing or invalid caller credentials."""

    status_code = 401
    code = "AUTH_REQUIRED"


class CronAuthError(AppError):
    """Scheduler presented a missing or wrong shared secret."""

    status_code = 401
    code = "CRON_UNAUTHORIZED"


class ForbiddenError(AppError):
    """Wrong role, or not a counterparty of the entity."""

    status_code = 403
    code = "AUTH_FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class StateConflictError(AppError):
    """Requested change is not allowed from the entity's current state.

    Callers should re-fetch state rather than retry blindly.
    """

    status_code = 409
    code = "ORDER_INVALID_STATUS_TRANSITION"


class DuplicateRatingError(StateConflictError):
    code = "RATING_DUPLICATE"


class InvalidInputError(AppError):
    status_code = 422
    code = "VALIDATION_FAILED"


class ExternalServiceError(AppError):
    """An outbound call on the authoritative path failed."""

    status_code = 502
    code = "EXTERNAL_SERVICE_FAILED"
