"""
Domain errors shared by the generation and deployment services.

Each carries the HTTP status the API layer answers with.
"""

from fastapi import status


class SiteGenError(Exception):
    """Base class for client-visible domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "SiteGenError"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(SiteGenError):
    """Referenced conversation or generation does not exist (or is hidden)."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "NotFound"


class AuthorizationError(SiteGenError):
    """Caller does not own the referenced resource."""

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "Forbidden"


class PreconditionError(SiteGenError):
    """Operation needs state that does not exist yet (e.g. edit with no site)."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "PreconditionFailed"


class VersionConflictError(SiteGenError):
    """Concurrent writers kept replacing the current version."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "VersionConflict"
