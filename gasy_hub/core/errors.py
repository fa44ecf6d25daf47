"""
Domain errors for Gasy Hub.

Services raise these; the application maps them to HTTP responses
using the status_code carried by each class.
"""

from fastapi import status


class GasyHubError(Exception):
    """Base class for all domain errors."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GasyHubError):
    """Missing or malformed required field."""
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed from the current status."""


class ForbiddenError(GasyHubError):
    """Caller is not allowed to perform the operation."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(GasyHubError):
    """Unknown alert or user."""
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyVotedError(GasyHubError):
    """The user already cast a validation vote on this alert."""
    status_code = status.HTTP_409_CONFLICT


class StorageError(GasyHubError):
    """Persistence failure. Never retried automatically."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
