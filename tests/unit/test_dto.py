import pytest
from pydantic import ValidationError

from mathdoc.pipeline.models.dto import (
    ConversionJob,
    DocumentRecord,
    JobStatus,
    StatusResponse,
    StoredArtifact,
)


class TestJobStatus:
    @pytest.mark.parametrize(
        "remote,status",
        [
            ("completed", JobStatus.COMPLETED),
            ("error", JobStatus.ERRORED),
            ("ERRORED", JobStatus.ERRORED),
            ("received", JobStatus.PROCESSING),
            ("split", JobStatus.PROCESSING),
            (None, JobStatus.PROCESSING),
        ],
    )
    def test_from_remote(self, remote, status):
        assert JobStatus.from_remote(remote) is status


class TestConversionJob:
    def test_submitted_job_has_no_id(self):
        job = ConversionJob(source_url="https://files.test/a.pdf")

        assert job.status is JobStatus.SUBMITTED
        assert job.job_id is None
        assert not job.terminal

    def test_submitted_with_id_rejected(self):
        with pytest.raises(ValidationError):
            ConversionJob(source_url="u", job_id="job-1")

    @pytest.mark.parametrize("status", [JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.ERRORED])
    def test_accepted_job_requires_id(self, status):
        with pytest.raises(ValidationError):
            ConversionJob(source_url="u", status=status)

    def test_terminal_states(self):
        done = ConversionJob(source_url="u", job_id="j", status=JobStatus.COMPLETED)
        failed = ConversionJob(source_url="u", job_id="j", status=JobStatus.ERRORED)
        running = ConversionJob(source_url="u", job_id="j", status=JobStatus.PROCESSING)

        assert done.terminal and failed.terminal
        assert not running.terminal


class TestRemoteResponses:
    def test_unknown_fields_kept(self):
        status = StatusResponse.model_validate({"status": "split", "num_pages": 3})

        assert status.status == "split"
        assert status.model_extra == {"num_pages": 3}


class TestRecords:
    def test_stored_artifact_requires_markup(self):
        with pytest.raises(ValidationError):
            StoredArtifact(owner_id="u1", file_name="a.mmd", markup="")

    def test_document_record_timestamp_in_millis(self):
        record = DocumentRecord(id="a.mmd", title="a", content="$a$")
        assert record.timestamp > 10**12
