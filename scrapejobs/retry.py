"""
Retry logic with exponential backoff for a lock-prone job store.

SQLite rejects concurrent writers with "database is locked" / SQLITE_BUSY.
Those errors are retried with capped exponential backoff plus jitter; any
other error is returned to the caller on the first attempt. Every wait can
be cut short by the caller's CancellationToken.
"""

import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from .errors import OperationCancelledError, RetryExhaustedError
from .logger import StructuredLogger, get_logger
from .models import Job, SelectParams

T = TypeVar("T")

SQLITE_BUSY = 5
SQLITE_LOCKED = 6

BUSY_MARKERS = (
    "database is locked",
    "database table is locked",
    "SQLITE_BUSY",
    "SQLITE_LOCKED",
)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Backoff parameters for execute_with_retry.

    Args:
        base_delay: Delay before the first retry, in seconds
        max_delay: Ceiling for the exponential part of the delay
        max_attempts: Physical calls allowed per logical call
        jitter: Upper bound of the random extra delay, as a fraction of the delay
    """
    base_delay: float = 0.1
    max_delay: float = 5.0
    max_attempts: int = 10
    jitter: float = 0.2

    def delay_for(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Return the wait after the given zero-based attempt failed."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        rng = rng or random
        return delay + delay * self.jitter * rng.random()


class CancellationToken:
    """
    Per-call cancellation signal with an optional deadline.

    Either cancel() or an expired deadline ends waits early. A token is
    meant to be owned by one logical call (or one worker); it is safe to
    cancel from another thread.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._timed_out = False

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self._expired()

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled"
        if self._expired():
            return "deadline exceeded"
        return ""

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``. Returns True if cancelled in the meantime."""
        if self._deadline is not None:
            remaining = self._deadline - time.monotonic()
            if remaining <= seconds:
                if not self._event.wait(max(remaining, 0.0)):
                    self._timed_out = True
                return True
        return self._event.wait(seconds)

    def _expired(self) -> bool:
        if self._timed_out:
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline


def is_busy_error(exception: Optional[BaseException]) -> bool:
    """
    Determine if an exception means the store is temporarily locked.

    Checks the sqlite3 result code on the exception or on the DBAPI error
    SQLAlchemy wraps (``.orig``), then falls back to message matching for
    drivers that only report text.
    """
    if exception is None:
        return False

    for err in (exception, getattr(exception, "orig", None)):
        code = getattr(err, "sqlite_errorcode", None)
        if code is not None:
            # Extended result codes keep the primary code in the low byte
            return (code & 0xFF) in (SQLITE_BUSY, SQLITE_LOCKED)

    error_str = str(exception)
    return any(marker in error_str for marker in BUSY_MARKERS)


def execute_with_retry(
    operation: str,
    fn: Callable[[], T],
    policy: Optional[BackoffPolicy] = None,
    cancel: Optional[CancellationToken] = None,
    logger: Optional[StructuredLogger] = None,
    rng: Optional[random.Random] = None,
) -> T:
    """
    Call ``fn`` until it succeeds, fails with a non-busy error, or runs out
    of attempts.

    Args:
        operation: Label used in log lines and errors
        fn: The store call
        policy: Backoff parameters (defaults: 100ms floor, 5s ceiling, 10 attempts)
        cancel: Token checked before each attempt and waited on between attempts
        logger: Logger for retry diagnostics
        rng: Random source for jitter

    Raises:
        OperationCancelledError: If the token fires before an attempt or during a wait
        RetryExhaustedError: If every attempt hit a busy/locked store
        Original exception: For any other store error
    """
    policy = policy or BackoffPolicy()
    logger = logger or get_logger()
    last_error: Optional[BaseException] = None

    for attempt in range(policy.max_attempts):
        if cancel is not None and cancel.cancelled:
            raise OperationCancelledError(operation, cancel.reason)

        logger.record_store_call()
        try:
            return fn()
        except Exception as e:
            if not is_busy_error(e):
                raise
            last_error = e

        if attempt == policy.max_attempts - 1:
            break

        delay = policy.delay_for(attempt, rng)
        logger.record_busy_retry()
        logger.warning(
            f"Store busy on {operation} (attempt {attempt + 1}/{policy.max_attempts}), "
            f"retrying after {delay:.3f}s: {last_error}"
        )

        if cancel is None:
            time.sleep(delay)
        elif cancel.wait(delay):
            raise OperationCancelledError(operation, cancel.reason) from last_error

    logger.record_retries_exhausted()
    logger.error(
        f"Giving up on {operation} after {policy.max_attempts} attempts",
        error=str(last_error),
    )
    raise RetryExhaustedError(operation, policy.max_attempts, last_error) from last_error


class RetryingRepository:
    """
    Wraps a JobRepository so that every call goes through execute_with_retry.

    The wrapped repository never retries on its own and this class never
    takes locks; it only reacts to busy/locked errors.
    """

    def __init__(
        self,
        repo,
        policy: Optional[BackoffPolicy] = None,
        logger: Optional[StructuredLogger] = None,
        rng: Optional[random.Random] = None,
    ):
        self.repo = repo
        self.policy = policy or BackoffPolicy()
        self.logger = logger or get_logger()
        self._rng = rng

    def _run(self, operation: str, fn: Callable[[], T], cancel: Optional[CancellationToken]) -> T:
        return execute_with_retry(
            operation, fn, policy=self.policy, cancel=cancel, logger=self.logger, rng=self._rng
        )

    def get(self, job_id: str, cancel: Optional[CancellationToken] = None) -> Job:
        return self._run("Get", lambda: self.repo.get(job_id), cancel)

    def create(self, job: Job, cancel: Optional[CancellationToken] = None) -> None:
        self._run("Create", lambda: self.repo.create(job), cancel)

    def delete(self, job_id: str, cancel: Optional[CancellationToken] = None) -> None:
        self._run("Delete", lambda: self.repo.delete(job_id), cancel)

    def select(
        self,
        params: SelectParams,
        cancel: Optional[CancellationToken] = None,
        operation: str = "Select",
    ) -> List[Job]:
        return self._run(operation, lambda: self.repo.select(params), cancel)

    def update(self, job: Job, cancel: Optional[CancellationToken] = None) -> None:
        self._run("Update", lambda: self.repo.update(job), cancel)
