"""
Typed service-layer errors for the leave workflow.

Each error carries the HTTP status the API layer should answer with, so callers
can tell a conflict from a missing record without parsing messages.
"""
from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Malformed input: end before start, start in the past, blank reason, bad file."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ServiceError):
    """The requested dates overlap an existing active leave."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientBalanceError(ServiceError):
    """The requested days exceed the remaining entitlement."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, requested_days: int, remaining_days: int) -> None:
        super().__init__(
            f"Insufficient leave balance. Requested: {requested_days} days, remaining: {remaining_days} days"
        )
        self.requested_days = requested_days
        self.remaining_days = remaining_days


class InvalidStateError(ServiceError):
    """The action is not allowed from the leave's current status."""

    status_code = status.HTTP_409_CONFLICT


class AuthorizationError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class InfrastructureError(ServiceError):
    """Storage, file or other infrastructure failure. The message is safe to show to callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An unexpected error occurred while processing your request. Please try again later.") -> None:
        super().__init__(message)
