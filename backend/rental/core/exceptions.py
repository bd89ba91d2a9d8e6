"""
Domain exceptions.

Components raise these; the HTTP boundary in rental.main turns them into the
JSON envelope ``{"success": false, "message": ..., "error": ...}``.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import status


class RentalError(Exception):
    """Base class for every error a component may raise on purpose."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(RentalError):
    """Malformed or missing input, or a bad enum value."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Invalid input"


class Unauthenticated(RentalError):
    """No credential was presented, or login credentials were wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Login required"


class InvalidCredential(Unauthenticated):
    """The presented token did not verify (expired, malformed, forged)."""

    code = "invalid_credential"
    default_message = "Invalid token"


class Forbidden(RentalError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "You do not have permission to perform this action"


class NotFound(RentalError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class Conflict(RentalError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Conflict"


class InternalError(RentalError):
    """Store I/O failure or any other unexpected condition."""
