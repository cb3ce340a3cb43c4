"""
Jobs Repository.

Responsibilities:
- CRUD and filtered select over jobs.
- One transaction per call.

Non-Responsibilities:
- No retries (see retry.RetryingRepository).
- No validation.
- No artifact handling.

Invariant:
Repositories must not encode lifecycle decisions.
"""

import copy
import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from .database import JobRow, init_database
from .errors import JobNotFoundError
from .models import Job, JobData, SelectParams, to_utc_naive


class JobRepository(ABC):
    """Storage backend for jobs. Any call may raise a busy/locked error."""

    @abstractmethod
    def get(self, job_id: str) -> Job:
        """Return the job or raise JobNotFoundError."""

    @abstractmethod
    def create(self, job: Job) -> None:
        """Insert a new job."""

    @abstractmethod
    def delete(self, job_id: str) -> None:
        """Remove the job if it exists."""

    @abstractmethod
    def select(self, params: SelectParams) -> List[Job]:
        """Return jobs matching ``params``, oldest first."""

    @abstractmethod
    def update(self, job: Job) -> None:
        """Overwrite an existing job or raise JobNotFoundError."""


def _matches(job: Job, params: SelectParams) -> bool:
    return not params.status or job.status == params.status


def _stored(job: Job) -> Job:
    # SQLite drops tzinfo, so both backends keep dates as naive UTC.
    stored = copy.deepcopy(job)
    stored.date = to_utc_naive(stored.date)
    return stored


class InMemoryJobRepository(JobRepository):
    """Dict-backed repository for tests and one-off runs."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Job:
        with self._lock:
            if job_id not in self._jobs:
                raise JobNotFoundError(job_id)
            return copy.deepcopy(self._jobs[job_id])

    def create(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"job {job.id} already exists")
            self._jobs[job.id] = _stored(job)

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def select(self, params: SelectParams) -> List[Job]:
        with self._lock:
            jobs = [j for j in self._jobs.values() if _matches(j, params)]
        jobs.sort(key=lambda j: (j.date, j.id))
        if params.limit > 0:
            jobs = jobs[:params.limit]
        return [copy.deepcopy(j) for j in jobs]

    def update(self, job: Job) -> None:
        with self._lock:
            if job.id not in self._jobs:
                raise JobNotFoundError(job.id)
            self._jobs[job.id] = _stored(job)


def _to_row(job: Job) -> JobRow:
    row = JobRow(id=job.id)
    _copy_into(row, job)
    return row


def _copy_into(row: JobRow, job: Job) -> None:
    row.name = job.name
    row.status = str(getattr(job.status, "value", job.status))
    row.date = to_utc_naive(job.date)
    row.data = json.dumps(job.data.to_dict())


def _from_row(row: JobRow) -> Job:
    return Job(
        id=row.id,
        name=row.name,
        date=row.date,
        status=row.status,
        data=JobData.from_dict(json.loads(row.data)),
    )


class SqliteJobRepository(JobRepository):
    """
    SQLAlchemy-backed repository over a SQLite file.

    Concurrent writers surface as sqlalchemy.exc.OperationalError
    ("database is locked") once sqlite3's own lock timeout expires.
    """

    def __init__(self, db_path: Path, lock_timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.engine = init_database(self.db_path, lock_timeout)
        self._Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def get(self, job_id: str) -> Job:
        with self._Session() as session:
            row = session.get(JobRow, job_id)
            if row is None:
                raise JobNotFoundError(job_id)
            return _from_row(row)

    def create(self, job: Job) -> None:
        with self._Session.begin() as session:
            session.add(_to_row(job))

    def delete(self, job_id: str) -> None:
        with self._Session.begin() as session:
            row = session.get(JobRow, job_id)
            if row is not None:
                session.delete(row)

    def select(self, params: SelectParams) -> List[Job]:
        stmt = select(JobRow)
        if params.status:
            stmt = stmt.where(JobRow.status == params.status)
        stmt = stmt.order_by(JobRow.date.asc(), JobRow.id.asc())
        if params.limit > 0:
            stmt = stmt.limit(params.limit)

        with self._Session() as session:
            return [_from_row(row) for row in session.scalars(stmt).all()]

    def update(self, job: Job) -> None:
        with self._Session.begin() as session:
            row = session.get(JobRow, job.id)
            if row is None:
                raise JobNotFoundError(job.id)
            _copy_into(row, job)

    def close(self) -> None:
        self.engine.dispose()
