from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Each subclass carries a stable ``code`` and the HTTP ``status`` the
    boundary layer should surface.
    """

    code = "DOMAIN_ERROR"
    status = 400
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class GuestNotFound(DomainError):
    code = "GUEST_NOT_FOUND"
    status = 404
    default_message = "Guest not found"


class AlreadyCheckedIn(DomainError):
    code = "ALREADY_CHECKED_IN"
    status = 400
    default_message = "Guest is already checked in"


class NotCheckedIn(DomainError):
    code = "NOT_CHECKED_IN"
    status = 400
    default_message = "Guest is not checked in"


class GuestCurrentlyCheckedIn(DomainError):
    code = "GUEST_CURRENTLY_CHECKED_IN"
    status = 400
    default_message = "A guest who is currently checked in cannot be deleted"


class SequenceLimitExceeded(DomainError):
    code = "SEQUENCE_LIMIT_EXCEEDED"
    status = 500
    default_message = "Yearly registration limit reached"


class DisplayIdGenerationFailed(DomainError):
    code = "DISPLAY_ID_GENERATION_FAILED"
    status = 500
    default_message = "Failed to generate display id"


class Forbidden(DomainError):
    code = "FORBIDDEN"
    status = 403
    default_message = "Permission denied"


class NotFound(DomainError):
    code = "NOT_FOUND"
    status = 404
    default_message = "Resource not found"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"
    status = 400
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidTimestamp(ValidationError):
    code = "INVALID_TIMESTAMP"
    default_message = "Invalid timestamp"


class StorageError(Exception):
    """Raised by storage adapters when the database call itself fails."""
