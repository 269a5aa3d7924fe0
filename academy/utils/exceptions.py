class AcademyException(Exception):
    """Base exception for the course progress service"""

    def __init__(self, message: str = "Error"):
        self.message = message
        super().__init__(self.message)


class ValidationException(AcademyException):
    """Malformed or incomplete input (400). Raised before any store is touched."""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message)


class ResourceNotFoundException(AcademyException):
    """Exception for Not Found (404)"""

    def __init__(self, message: str = "Resource Not Found"):
        super().__init__(message)


class AccessDeniedException(AcademyException):
    """Exception for Forbidden (403)"""

    def __init__(self, message: str = "Access Denied"):
        super().__init__(message)


class UnauthorizedException(AcademyException):
    """Exception for Unauthorized (401)"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ConflictException(AcademyException):
    """
    Stale write against a submission or enrollment (409).

    Callers must re-read the record and retry; the service never retries on
    its own.
    """

    def __init__(self, message: str = "Conflict", current_version: int | None = None):
        self.current_version = current_version
        super().__init__(message)
