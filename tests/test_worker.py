"""
Tests for the single-step job worker.
"""

import csv

import pytest

from scrapejobs.errors import RetryExhaustedError
from scrapejobs.models import JobStatus
from scrapejobs.records import Entry, TabularRecord
from scrapejobs.service import JobService
from scrapejobs.worker import JobWorker

from conftest import FlakyRepository, make_job


def read_csv(path):
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


class TestJobWorker:
    def test_nothing_pending(self, service, quiet_logger):
        worker = JobWorker(service, scrape=lambda job: [], logger=quiet_logger)
        assert worker.run_once() is None

    def test_successful_job(self, service, quiet_logger):
        service.create(make_job("j1", fields="title,phone"))
        seen = []

        def scrape(job):
            seen.append(service.get(job.id).status)
            yield Entry(title="Cafe One", phone="111")
            yield [Entry(title="Cafe Two", phone="222"), Entry(title="Cafe Three")]

        job = JobWorker(service, scrape, logger=quiet_logger).run_once()

        assert job.status == JobStatus.OK
        assert seen == ["working"]
        assert service.get("j1").status == "ok"
        assert read_csv(service.get_csv("j1")) == [
            ["title", "phone"],
            ["Cafe One", "111"],
            ["Cafe Two", "222"],
            ["Cafe Three", ""],
        ]
        assert quiet_logger.metrics["jobs_processed"] == 1
        assert quiet_logger.metrics["rows_written"] == 3

    def test_oldest_pending_first(self, service, quiet_logger):
        service.create(make_job("late", minutes_ago=1))
        service.create(make_job("early", minutes_ago=30))

        job = JobWorker(service, lambda job: [], logger=quiet_logger).run_once()
        assert job.id == "early"

    def test_scrape_failure_marks_failed(self, service, quiet_logger):
        service.create(make_job("j2"))

        def scrape(job):
            yield TabularRecord(["title"], ["partial"])
            raise TimeoutError("max time reached")

        job = JobWorker(service, scrape, logger=quiet_logger).run_once()

        assert job.status == JobStatus.FAILED
        assert service.get("j2").status == "failed"
        assert read_csv(service.get_csv("j2")) == [["title"], ["partial"]]
        assert quiet_logger.metrics["errors_by_type"] == {"TimeoutError": 1}

    def test_invalid_result_marks_failed(self, service, quiet_logger):
        service.create(make_job("j3"))

        job = JobWorker(service, lambda job: [{"title": "x"}], logger=quiet_logger).run_once()

        assert job.status == JobStatus.FAILED
        assert quiet_logger.metrics["errors_by_type"] == {"InvalidResultError": 1}

    def test_store_errors_while_claiming_propagate(self, tmp_path, fast_policy, quiet_logger):
        repo = FlakyRepository()
        service = JobService(repo, tmp_path / "data", policy=fast_policy, logger=quiet_logger)
        service.create(make_job("j4"))
        repo.failures = repo.calls + 1000

        with pytest.raises(RetryExhaustedError, match="Select Pending"):
            JobWorker(service, lambda job: [], logger=quiet_logger).run_once()

    def test_invalid_stored_job_does_not_block_queue(self, service, quiet_logger):
        """A pending row that fails validation is parked as failed, and the next job runs."""
        service.repo.create(make_job("bad", minutes_ago=30, lang="english"))
        service.create(make_job("good", minutes_ago=1))
        worker = JobWorker(service, lambda job: [Entry(title="Cafe")], logger=quiet_logger)

        first = worker.run_once()
        assert first.id == "bad"
        assert first.status == JobStatus.FAILED
        assert service.get("bad").status == "failed"
        assert not service.artifact_path("bad").exists()

        second = worker.run_once()
        assert second.id == "good"
        assert second.status == JobStatus.OK
        assert worker.run_once() is None
        assert quiet_logger.metrics["errors_by_type"] == {"ValidationError": 1}
