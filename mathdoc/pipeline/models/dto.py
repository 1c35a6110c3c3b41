"""
Typed contracts across the pipeline.

Remote responses are validated into these models right after
deserialization; nothing past the conversion client sees raw JSON.
"""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class JobStatus(str, Enum):
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERRORED = "errored"

    @classmethod
    def from_remote(cls, value: str | None) -> "JobStatus":
        """Map a remote status string onto the local lifecycle.

        The service reports intermediate states (received, loaded, split,
        processing); all of them are treated as still processing.
        """
        status = (value or "").strip().lower()
        if status == "completed":
            return cls.COMPLETED
        if status in {"error", "errored"}:
            return cls.ERRORED
        return cls.PROCESSING


class ConversionJob(BaseModel):
    """
    One in-flight or completed remote conversion.
    """

    source_url: str
    job_id: str | None = None
    status: JobStatus = JobStatus.SUBMITTED
    error: str | None = None

    @model_validator(mode="after")
    def _job_id_matches_status(self) -> "ConversionJob":
        if self.status is JobStatus.SUBMITTED and self.job_id:
            raise ValueError("a submitted job has no job_id until accepted")
        if self.status is not JobStatus.SUBMITTED and not self.job_id:
            raise ValueError(f"job_id is required for status {self.status.value}")
        return self

    @property
    def terminal(self) -> bool:
        return self.status in {JobStatus.COMPLETED, JobStatus.ERRORED}


class SubmitResponse(BaseModel):
    """
    Response of POST /pdf.
    """

    model_config = ConfigDict(extra="allow")

    pdf_id: str | None = None
    error: str | None = None


class StatusResponse(BaseModel):
    """
    Response of GET /pdf/{job_id}.
    """

    model_config = ConfigDict(extra="allow")

    status: str | None = None
    error: str | None = None
    percent_done: float | None = None


class TextRecognitionResponse(BaseModel):
    """
    Response of POST /text for a single image.
    """

    model_config = ConfigDict(extra="allow")

    text: str | None = None
    latex_styled: str | None = None
    html: str | None = None
    confidence: float | None = None
    confidence_rate: float | None = None
    error: str | None = None


class StoredArtifact(BaseModel):
    """
    Converted markup persisted under an owner's namespace.
    """

    owner_id: str
    file_name: str
    markup: str = Field(min_length=1)
    created_at: float = Field(default_factory=time.time)


class DocumentRecord(BaseModel):
    """
    User-facing document resolved from a stored artifact.
    """

    id: str
    title: str
    content: str
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
