"""
Exception types raised by the quiz engine.

Each error carries the HTTP status the API layer reports it with, so
services stay transport-agnostic while controllers can still tell the
four failure kinds apart.
"""


class QuizHubError(Exception):
    """Base exception for all quiz engine errors."""
    status_code = 500
    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(QuizHubError):
    """Raised when a request is missing fields or has the wrong shape."""
    status_code = 400
    kind = "invalid_input"


class Unauthorized(QuizHubError):
    """Raised when no verifiable caller identity is available."""
    status_code = 401
    kind = "unauthorized"


class NotFound(QuizHubError):
    """Raised when a problem, its quiz, or a stored response is missing."""
    status_code = 404
    kind = "not_found"


class StorageError(QuizHubError):
    """Raised when the response ledger write fails."""
    status_code = 500
    kind = "storage_error"
