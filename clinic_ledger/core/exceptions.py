"""Custom ledger exceptions."""


class AppException(Exception):
    """Base ledger exception."""

    def __init__(self, message: str, code: str = "internal_error"):
        """Initialize exception with message and machine-readable code."""
        self.message = message
        self.code = code
        super().__init__(self.message)


class StorageException(AppException):
    """Backing table could not be read or written."""

    def __init__(self, message: str = "Storage error"):
        """Initialize with storage_error code."""
        super().__init__(message, code="storage_error")


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with not_found code."""
        super().__init__(message, code="not_found")


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with bad_request code."""
        super().__init__(message, code="bad_request")


class ConflictException(AppException):
    """Conflict exception.

    Raised for duplicates, transitions not allowed from the current status,
    and tables modified on disk since they were loaded.
    """

    def __init__(self, message: str = "Conflict"):
        """Initialize with conflict code."""
        super().__init__(message, code="conflict")


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with validation_error code."""
        super().__init__(message, code="validation_error")


class InsufficientStockException(AppException):
    """Not enough stock to dispense."""

    def __init__(self, message: str = "Insufficient stock"):
        """Initialize with insufficient_stock code."""
        super().__init__(message, code="insufficient_stock")
