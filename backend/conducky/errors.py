"""
Error types shared by the report engine and the HTTP layer.

Every error carries a stable ``code``, a client-safe ``message``, the HTTP
status it maps to, and optional structured ``details``. The API renders all of
them as ``{"error": {"code", "message", "details"}}``.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        # Class attributes are the defaults; only explicit arguments override.
        for name, value in (
            ("message", message),
            ("code", code),
            ("status_code", status_code),
            ("details", details),
        ):
            if value is not None:
                setattr(self, name, value)
        super().__init__(self.message)

    def payload(self) -> dict[str, Any]:
        return error_payload(self.code, self.message, self.details)


# Generic kinds. Each one is the canonical code for its HTTP status.


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Validation error"


class AuthError(AppError):
    code = "AUTH_ERROR"
    message = "Authentication failed"
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionError(AppError):  # type: ignore[override]
    code = "PERMISSION_DENIED"
    message = "Insufficient permissions"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    code = "CONFLICT_ERROR"
    message = "Resource conflict"
    status_code = status.HTTP_409_CONFLICT


class RateLimitExceededError(AppError):
    code = "RATE_LIMITED"
    message = "Too many attempts, try again later"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# Report workflow kinds. The engine returns these inside an Outcome; they are
# raised only when a caller unwraps it.


class ForbiddenError(PermissionError):
    code = "FORBIDDEN"
    message = "Forbidden: insufficient role"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"
    message = "Report cannot move to the requested state"


class StaleTransitionError(InvalidTransitionError):
    """Lost race: the report left the expected state before the update landed."""

    code = "STALE_TRANSITION"
    message = "Report state changed concurrently; reload and retry"


class MissingNotesError(ValidationError):
    code = "MISSING_NOTES"
    message = "Notes are required for this transition"


class MissingOrInvalidAssigneeError(ValidationError):
    code = "MISSING_OR_INVALID_ASSIGNEE"
    message = "Transition requires an assignee holding Responder or Event Admin in this event"


class InvalidAssigneeError(ValidationError):
    code = "INVALID_ASSIGNEE"
    message = "Assignee must hold Responder or Event Admin in this event"


ERROR_CODE_BY_STATUS: dict[int, str] = {
    kind.status_code: kind.code
    for kind in (
        ValidationError,
        AuthError,
        PermissionError,
        NotFoundError,
        ConflictError,
        RateLimitExceededError,
    )
}
# Request body validation failures share the 400 code.
ERROR_CODE_BY_STATUS[status.HTTP_422_UNPROCESSABLE_ENTITY] = ValidationError.code


def error_payload(code: str, message: str, details: Any | None = None) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def resolve_error_code(status_code: int) -> str:
    """Code for a bare HTTP status, e.g. from an ``HTTPException``."""
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.code
    return ERROR_CODE_BY_STATUS.get(status_code, "UNKNOWN_ERROR")
