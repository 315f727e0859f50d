"""
Application error taxonomy.

Every error carries the HTTP status it maps to; the global handler in
``gymdesk.app`` renders them with the standard ``{success, error}`` envelope.
"""

from fastapi import status


class AppError(Exception):
    """Base class for all errors rendered to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: dict | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.default_message
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(self.message)


class AuthenticationRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class PermissionDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource conflict"


class DuplicateError(ConflictError):
    default_message = "Resource already exists"


class SyncInProgressError(ConflictError):
    default_message = "Sync already in progress"


class RateLimitExceeded(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class RemoteServiceUnavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Remote service unavailable"


class MondayAPIError(RemoteServiceUnavailable):
    """Raised for transport failures or GraphQL errors from monday.com."""

    default_message = "monday.com API error"


class InternalError(AppError):
    pass
