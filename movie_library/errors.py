"""
movie_library/errors.py

Domain errors raised by the service layer. Each error carries the HTTP status
code the API answers with, so routers can let them propagate and a single
exception handler in main.py turns them into JSON responses.
"""


class LibraryError(Exception):
    """Base class of all expected, client-facing errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    """Input breaks a business rule (rating range, text length, names)."""
    status_code = 400


class NotFoundError(LibraryError):
    """Resource is missing or belongs to another user."""
    status_code = 404


class ConflictError(LibraryError):
    """A uniqueness rule of the store was violated."""
    status_code = 409


class UpstreamUnavailableError(LibraryError):
    """The external movie metadata source failed or timed out."""
    status_code = 503
