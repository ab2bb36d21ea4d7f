"""Errors for the notifications module.

Every error carries the HTTP status code the API layer answers with, so the
exception handlers stay a single mapping.
"""

from typing import Optional


class NotificationError(Exception):
    """Base class for notification errors.

    Attributes:
        message: human-friendly message
        status_code: HTTP status used when the error reaches the API
    """

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(NotificationError):
    """Bad or incomplete request, rejected before anything is persisted."""

    status_code = 400


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed from the current status."""

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        target_status: Optional[str] = None,
    ):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status


class NotFoundError(NotificationError):
    status_code = 404


class ConflictError(NotificationError):
    """Idempotency key already taken. Absorbed by the service on the create path."""

    status_code = 409


class ChannelError(NotificationError):
    """Provider-side failure. Recorded as a delivery attempt, never surfaced to callers."""

    status_code = 502


class InfrastructureError(NotificationError):
    """Store, queue or cache unreachable."""

    status_code = 503
