"""
Job lifecycle service.

Every store call goes through RetryingRepository. CSV artifacts live next
to the database as ``<data_folder>/<job id>.csv``; the service looks them
up and removes them but never checks them against the store.
"""

from pathlib import Path
from typing import List, Optional, TextIO

from .errors import ArtifactNotFoundError, InvalidNameError
from .logger import StructuredLogger, get_logger
from .models import Job, JobStatus, SelectParams, is_safe_name
from .repository import JobRepository
from .retry import BackoffPolicy, CancellationToken, RetryingRepository


class JobService:
    """Create, fetch, list, update, delete and dequeue scrape jobs."""

    def __init__(
        self,
        repo: JobRepository,
        data_folder: Path,
        policy: Optional[BackoffPolicy] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.logger = logger or get_logger()
        self.repo = RetryingRepository(repo, policy=policy, logger=self.logger)
        self.data_folder = Path(data_folder)

    def create(self, job: Job, cancel: Optional[CancellationToken] = None) -> None:
        job.validate()
        self.repo.create(job, cancel)
        self.logger.info(f"Job created: {job.id}", name=job.name, status=job.status)

    def get(self, job_id: str, cancel: Optional[CancellationToken] = None) -> Job:
        return self.repo.get(job_id, cancel)

    def all(self, cancel: Optional[CancellationToken] = None) -> List[Job]:
        return self.repo.select(SelectParams(), cancel, operation="Select All")

    def update(self, job: Job, cancel: Optional[CancellationToken] = None) -> None:
        job.validate()
        self.repo.update(job, cancel)
        self.logger.info(f"Job updated: {job.id}", status=job.status)

    def select_pending(self, cancel: Optional[CancellationToken] = None) -> List[Job]:
        """
        Return at most one pending job, oldest first.

        The caller claims it by updating its status to working. Two
        concurrent callers can receive the same job.
        """
        params = SelectParams(status=JobStatus.PENDING.value, limit=1)
        return self.repo.select(params, cancel, operation="Select Pending")

    def delete(self, job_id: str, cancel: Optional[CancellationToken] = None) -> None:
        """
        Remove the job's CSV artifact (if any), then the job row.

        Raises:
            InvalidNameError: If job_id could escape the data folder
            OSError: If the artifact exists but cannot be removed
        """
        datapath = self.artifact_path(job_id)

        try:
            datapath.unlink()
            self.logger.debug(f"Removed artifact {datapath}")
        except FileNotFoundError:
            pass

        self.repo.delete(job_id, cancel)
        self.logger.info(f"Job deleted: {job_id}")

    def get_csv(self, job_id: str) -> Path:
        """
        Locate the CSV artifact of a job. The store is not consulted, so a
        job that exists but has not produced output yet is reported the
        same way as an unknown id.

        Raises:
            InvalidNameError: If job_id could escape the data folder
            ArtifactNotFoundError: If no artifact exists
        """
        datapath = self.artifact_path(job_id)
        if not datapath.is_file():
            raise ArtifactNotFoundError(job_id)
        return datapath

    def artifact_path(self, job_id: str) -> Path:
        if not is_safe_name(job_id):
            raise InvalidNameError("invalid file name")
        return self.data_folder / f"{job_id}.csv"

    def open_csv(self, job_id: str) -> TextIO:
        """Open the job's artifact for writing, truncating any previous one."""
        datapath = self.artifact_path(job_id)
        datapath.parent.mkdir(parents=True, exist_ok=True)
        return datapath.open("w", newline="", encoding="utf-8")
