"""
Error taxonomy shared by the store, retry, service and export layers.

Validation and not-found conditions are reported to the caller as-is;
only busy/locked store errors are retried (see retry.py).
"""


class ScrapeJobsError(Exception):
    """Base class for errors raised by scrapejobs."""
    pass


class ValidationError(ScrapeJobsError, ValueError):
    """A job or job payload is missing a field or has a malformed one."""
    pass


class InvalidNameError(ValidationError):
    """A job id cannot be used to derive an artifact file name."""
    pass


class NotFoundError(ScrapeJobsError, LookupError):
    """Something the caller asked for does not exist."""
    pass


class JobNotFoundError(NotFoundError):
    """No job row exists for the given id."""

    def __init__(self, job_id: str):
        super().__init__(f"job {job_id} not found")
        self.job_id = job_id


class ArtifactNotFoundError(NotFoundError):
    """No CSV artifact exists for the given id (the job itself may exist)."""

    def __init__(self, job_id: str):
        super().__init__(f"csv file not found for job {job_id}")
        self.job_id = job_id


class RetryError(ScrapeJobsError):
    """Base class for retry envelope failures."""
    pass


class RetryExhaustedError(RetryError):
    """Raised when every attempt hit a busy/locked store."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        super().__init__(
            f"operation {operation} failed after {attempts} attempts: {last_error}"
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class OperationCancelledError(ScrapeJobsError):
    """Raised when a caller's cancellation token fires before or during a wait."""

    def __init__(self, operation: str, reason: str = "cancelled"):
        super().__init__(f"operation {operation} {reason}")
        self.operation = operation
        self.reason = reason


class InvalidResultError(ScrapeJobsError, TypeError):
    """A result item is neither a record nor a collection of records."""
    pass
