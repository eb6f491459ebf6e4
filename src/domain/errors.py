"""
Domain error taxonomy.

Every error carries the HTTP status the API layer answers with, so the
exception handlers stay a one-liner per family.
"""


class LogisticsError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LogisticsError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(LogisticsError):
    """An identifier did not resolve to a stored record."""

    status_code = 404


class ConflictError(LogisticsError):
    """The request collides with current state (taken username, busy driver)."""

    status_code = 409


class InvalidStateTransition(ConflictError):
    """Raised when a trip status change violates the state machine."""


class AuthError(LogisticsError):
    status_code = 401
