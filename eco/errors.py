"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class AuthRequired(AppError):
    """Raised when a bearer token or session is missing or invalid."""

    def __init__(self, message="Authentication required."):
        """Initialize the error."""
        super().__init__(message, 401)


class Forbidden(AppError):
    """Raised on a role or ownership mismatch."""

    def __init__(self, message="Forbidden."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UpstreamFailure(AppError):
    """Raised when Firestore or Storage returns an error."""

    def __init__(self, message="Upstream service failed."):
        """Initialize the error."""
        super().__init__(message, 502)


class QueryTimeout(AppError):
    """Raised when a fetch exceeds its time budget."""

    def __init__(self, message="Demorou demais"):
        """Initialize the error."""
        super().__init__(message, 504)


class InternalError(AppError):
    """Raised when a required write or read fails and the request must abort."""

    def __init__(self, message="Internal error."):
        """Initialize the error."""
        super().__init__(message, 500)
