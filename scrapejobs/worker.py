"""
Single-step job runner.

Picks the next pending job, marks it working, streams whatever the scrape
callable yields through a ProjectingWriter into the job's CSV artifact,
and records the outcome as ok or failed.
"""

from typing import Any, Callable, Iterable, Optional

from .csvwriter import ProjectingWriter
from .errors import ValidationError
from .logger import StructuredLogger, get_logger
from .models import Job, JobStatus
from .retry import CancellationToken
from .service import JobService

ScrapeFunc = Callable[[Job], Iterable[Any]]


class JobWorker:
    def __init__(
        self,
        service: JobService,
        scrape: ScrapeFunc,
        logger: Optional[StructuredLogger] = None,
    ):
        self.service = service
        self.scrape = scrape
        self.logger = logger or get_logger()

    def run_once(self, cancel: Optional[CancellationToken] = None) -> Optional[Job]:
        """
        Process one pending job.

        Returns:
            The job in its final state, or None if nothing was pending

        Raises:
            Store errors raised while claiming or finishing the job
        """
        pending = self.service.select_pending(cancel)
        if not pending:
            return None

        job = pending[0]
        job.status = JobStatus.WORKING.value
        try:
            self.service.update(job, cancel)
        except ValidationError as e:
            # Rows written straight to the store can skip validation; park
            # them as failed so they do not block the queue.
            job.status = JobStatus.FAILED.value
            self.service.repo.update(job, cancel)
            self.logger.error(f"Job {job.id} rejected: {e}", error_type=type(e).__name__)
            self.logger.record_job_result(False, type(e).__name__)
            return job

        try:
            with self.service.open_csv(job.id) as sink:
                writer = ProjectingWriter(sink, job.data.fields, logger=self.logger)
                rows = writer.run(self.scrape(job))
        except Exception as e:
            job.status = JobStatus.FAILED.value
            self.logger.error(
                f"Job {job.id} failed: {e}",
                error_type=type(e).__name__,
            )
            self.logger.record_job_result(False, type(e).__name__)
        else:
            job.status = JobStatus.OK.value
            self.logger.info(f"Job {job.id} finished", rows=rows)
            self.logger.record_job_result(True)

        self.service.update(job, cancel)
        return job
