"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, code: str | None = None):
        """Initialize exception with message, status code and optional error code."""
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found", code: str | None = None):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, code=code)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request", code: str | None = None):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400, code=code)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict", code: str | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, code=code)


class AppointmentLimitException(BadRequestException):
    """Patient already holds the maximum number of confirmed appointments."""

    def __init__(self, limit: int):
        """Initialize with the configured limit."""
        super().__init__(
            f"You cannot hold more than {limit} confirmed appointments at the same time",
            code="APPOINTMENT_LIMIT_EXCEEDED",
        )


class CancellationTooLateException(BadRequestException):
    """Cancellation requested inside the cutoff window."""

    def __init__(self, hours: int):
        """Initialize with the cutoff in hours."""
        super().__init__(
            f"Appointments must be cancelled at least {hours} hours in advance",
            code="CANCELLATION_TOO_LATE",
        )


class AppointmentStateException(BadRequestException):
    """Requested transition is not allowed from the current status."""
