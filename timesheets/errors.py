class TimesheetError(Exception):
    """Base exception for timesheet rule violations."""

    code = "internal"
    retryable = False


class NotFound(TimesheetError):
    """Raised when a timesheet or entry does not exist."""

    code = "not_found"


class InvalidState(TimesheetError):
    """Raised when the timesheet status does not allow the requested change."""

    code = "invalid_state"


class ValidationError(TimesheetError):
    """Raised when input data is invalid."""

    code = "validation"


class RepositoryError(TimesheetError):
    """Raised by persistence backends when storage is unreachable or fails."""

    code = "unavailable"

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable
