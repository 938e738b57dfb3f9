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


class InvalidStateError(AppError):
    """Raised when an operation is not permitted in the current status."""

    def __init__(self, message="Operation not allowed in the current state."):
        """Initialize the error."""
        super().__init__(message, 400)


class ForbiddenError(AppError):
    """Raised when the caller may not act on a resource."""

    def __init__(self, message="Forbidden."):
        """Initialize the error."""
        super().__init__(message, 403)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class IntegrityFault(AppError):
    """Raised when bracket arithmetic breaks an invariant.

    This is a programming-contract violation, never a user input error. The
    operation that hit it is aborted without writing anything.
    """

    def __init__(self, message="Bracket integrity violated."):
        """Initialize the error."""
        super().__init__(message, 500)


class StoreError(AppError):
    """Raised when the document store fails."""

    def __init__(self, message="The data store is unavailable."):
        """Initialize the error."""
        super().__init__(message, 503)
