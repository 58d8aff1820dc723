"""
Shared error types.

Every failure the report workflow can produce maps onto one of these, and
each carries the HTTP status the API layer responds with.
"""


class ReportError(Exception):
    """Base class for workflow errors surfaced to API clients."""

    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthRequired(ReportError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ReportError):
    """Ownership, role or status-gate violation."""
    status_code = 403
    default_message = "Access denied"


class NotFound(ReportError):
    status_code = 404
    default_message = "Record not found"


class ValidationError(ReportError):
    status_code = 400
    default_message = "Invalid request"


class NoFiles(ValidationError):
    """Raised when a media upload batch is empty."""
    default_message = "No files uploaded"


class Internal(ReportError):
    """Store or transport fault."""
    status_code = 500
    default_message = "Database error"
