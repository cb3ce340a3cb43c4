"""
Tests for job validation and serialization.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from scrapejobs.errors import ValidationError
from scrapejobs.models import Job, JobData, JobStatus, is_safe_name


class TestJobValidate:
    """Test Job.validate."""

    def test_valid_job(self, valid_job):
        """Fully populated job should validate."""
        valid_job.validate()

    @pytest.mark.parametrize(
        "field_name, empty, message",
        [
            ("id", "", "missing id"),
            ("name", "", "missing name"),
            ("status", "", "missing status"),
            ("date", None, "missing date"),
        ],
    )
    def test_missing_scalar_field(self, valid_job, field_name, empty, message):
        """Removing any required field should fail with a matching error."""
        job = replace(valid_job, **{field_name: empty})
        with pytest.raises(ValidationError, match=message):
            job.validate()

    @pytest.mark.parametrize("job_id", ["../etc", "a/b", "a\\b", ".."])
    def test_unsafe_id(self, valid_job, job_id):
        """Ids that could escape the data folder are invalid."""
        job = replace(valid_job, id=job_id)
        with pytest.raises(ValidationError, match="invalid id"):
            job.validate()

    def test_unknown_status(self, valid_job):
        """Status outside the lifecycle set is invalid."""
        job = replace(valid_job, status="done")
        with pytest.raises(ValidationError, match="invalid status"):
            job.validate()

    def test_enum_status_accepted(self, valid_job):
        """JobStatus members validate like their string values."""
        job = replace(valid_job, status=JobStatus.WORKING)
        job.validate()

    def test_invalid_data_fails_job(self, valid_job):
        """Job validation includes the embedded data."""
        valid_job.data.keywords = []
        with pytest.raises(ValidationError, match="missing keywords"):
            valid_job.validate()


class TestJobDataValidate:
    """Test JobData.validate."""

    @pytest.mark.parametrize(
        "changes, message",
        [
            ({"keywords": []}, "missing keywords"),
            ({"lang": ""}, "missing lang"),
            ({"lang": "eng"}, "invalid lang"),
            ({"depth": 0}, "missing depth"),
            ({"max_time": timedelta(0)}, "missing max time"),
        ],
    )
    def test_invalid_fields(self, job_data, changes, message):
        with pytest.raises(ValidationError, match=message):
            replace(job_data, **changes).validate()

    @pytest.mark.parametrize("lat, lon", [("", ""), ("37.98", ""), ("", "23.72")])
    def test_fast_mode_requires_coordinates(self, job_data, lat, lon):
        """Fast mode without both coordinates is invalid."""
        data = replace(job_data, fast_mode=True, lat=lat, lon=lon)
        with pytest.raises(ValidationError, match="missing geo coordinates"):
            data.validate()

    def test_fast_mode_with_coordinates(self, job_data):
        data = replace(job_data, fast_mode=True, lat="37.98", lon="23.72")
        data.validate()

    def test_coordinates_optional_without_fast_mode(self, job_data):
        data = replace(job_data, lat="", lon="")
        data.validate()

    def test_validation_error_is_value_error(self, job_data):
        with pytest.raises(ValueError):
            replace(job_data, lang="").validate()


class TestSerialization:
    """Test dict conversion used by the store."""

    def test_job_round_trip(self, valid_job):
        restored = Job.from_dict(valid_job.to_dict())
        assert restored == valid_job

    def test_max_time_stored_as_seconds(self, job_data):
        assert job_data.to_dict()["max_time"] == 600.0

    def test_from_dict_defaults(self):
        data = JobData.from_dict({})
        assert data.keywords == []
        assert data.max_time == timedelta(0)
        assert data.fields == ""


class TestSafeName:
    def test_plain_id(self):
        assert is_safe_name("7f9c2ba4-e88f-11ec")

    def test_empty(self):
        assert not is_safe_name("")
