"""Custom exception classes for the application."""

from .core.constants import GENERIC_ERROR_MESSAGE, NETWORK_ERROR_MESSAGE


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400, errors=None):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or {}


class ValidationError(AppError):
    """Raised when the backend rejects a request with a message of its own."""

    def __init__(self, message=GENERIC_ERROR_MESSAGE, status_code=400, errors=None):
        """Initialize the error."""
        super().__init__(message, status_code, errors)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class NetworkError(AppError):
    """Raised when a request could not complete or returned no usable error."""

    def __init__(self, message=NETWORK_ERROR_MESSAGE, status_code=503):
        """Initialize the error."""
        super().__init__(message, status_code)


class AuthenticationError(AppError):
    """Raised when the credentials are missing, expired and not refreshable."""

    def __init__(self, message="Your session has expired. Please log in again."):
        """Initialize the error."""
        super().__init__(message, 401)


class ShapeError(AppError):
    """Raised when a successful response body is not the JSON we expect."""

    def __init__(self, message="Unexpected response from the server."):
        """Initialize the error."""
        super().__init__(message, 502)
