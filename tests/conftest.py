"""
Pytest configuration and shared fixtures.
"""

import sqlite3
from datetime import datetime, timedelta

import pytest

from scrapejobs.logger import StructuredLogger
from scrapejobs.models import Job, JobData, JobStatus
from scrapejobs.repository import InMemoryJobRepository, SqliteJobRepository
from scrapejobs.retry import BackoffPolicy
from scrapejobs.service import JobService


class FlakyRepository(InMemoryJobRepository):
    """In-memory repository that reports a locked database on the first N calls."""

    def __init__(self, failures: int = 0, error: Exception = None):
        super().__init__()
        self.failures = failures
        self.error = error or sqlite3.OperationalError("database is locked")
        self.calls = 0

    def _maybe_fail(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error

    def get(self, job_id):
        self._maybe_fail()
        return super().get(job_id)

    def create(self, job):
        self._maybe_fail()
        super().create(job)

    def delete(self, job_id):
        self._maybe_fail()
        super().delete(job_id)

    def select(self, params):
        self._maybe_fail()
        return super().select(params)

    def update(self, job):
        self._maybe_fail()
        super().update(job)


@pytest.fixture
def quiet_logger() -> StructuredLogger:
    """Logger with no console output."""
    return StructuredLogger(name="scrapejobs-test", level="DEBUG", enable_console=False)


@pytest.fixture
def fast_policy() -> BackoffPolicy:
    """Backoff policy with millisecond delays."""
    return BackoffPolicy(base_delay=0.001, max_delay=0.005, max_attempts=5)


@pytest.fixture
def job_data() -> JobData:
    """Valid job parameters."""
    return JobData(
        keywords=["coffee shops in athens"],
        lang="en",
        zoom=15,
        depth=10,
        max_time=timedelta(minutes=10),
        fields="title,phone",
    )


def make_job(job_id: str, status: str = JobStatus.PENDING.value, minutes_ago: int = 0, **data) -> Job:
    base = dict(
        keywords=["bakeries"],
        lang="en",
        depth=5,
        max_time=timedelta(minutes=5),
    )
    base.update(data)
    return Job(
        id=job_id,
        name=f"job {job_id}",
        date=datetime(2024, 5, 1, 12, 0) - timedelta(minutes=minutes_ago),
        status=status,
        data=JobData(**base),
    )


@pytest.fixture
def valid_job(job_data) -> Job:
    """Valid pending job."""
    return Job(
        id="job-1",
        name="Athens coffee",
        date=datetime(2024, 5, 1, 9, 30),
        status=JobStatus.PENDING.value,
        data=job_data,
    )


@pytest.fixture
def sqlite_repo(tmp_path):
    """SQLite repository in a temporary directory."""
    repo = SqliteJobRepository(tmp_path / "jobs.db")
    yield repo
    repo.close()


@pytest.fixture
def service(tmp_path, fast_policy, quiet_logger) -> JobService:
    """Service over an in-memory store with artifacts in tmp_path/data."""
    return JobService(
        InMemoryJobRepository(),
        tmp_path / "data",
        policy=fast_policy,
        logger=quiet_logger,
    )
