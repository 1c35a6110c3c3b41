"""Pydantic request/response schemas for API endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mathdoc.pipeline.models.dto import DocumentRecord


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://www.rfc-editor.org/rfc/rfc7807
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary of the problem")
    status: int = Field(..., description="HTTP status code for this problem")
    detail: Optional[str] = Field(
        None, description="Human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="URI reference identifying this specific occurrence (e.g., request path)"
    )

    # Extension members (allowed by RFC 7807)
    code: str = Field(..., description="Application-specific error code")
    category: str = Field(..., description="Error category (client_error, server_error)")
    retryable: bool = Field(default=False, description="Whether the request can be retried")
    user_message: Optional[str] = Field(
        None, description="Message suitable for showing to the end user"
    )
    trace_id: Optional[str] = Field(None, description="Trace ID for log correlation")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "/errors/LOW_CONFIDENCE",
                "title": "Low confidence in text recognition: 0.5",
                "status": 422,
                "instance": "/v1/documents",
                "code": "LOW_CONFIDENCE",
                "category": "client_error",
                "retryable": False,
                "user_message": "Error: Low confidence in text recognition: 0.5",
                "trace_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
            }
        }
    )


class ConvertResponse(BaseModel):
    file_name: str = Field(..., description="Stored file name")
    title: str = Field(..., description="Display title")
    content: str = Field(..., description="Converted markup")
    processing_time_seconds: float
    trace_id: Optional[str] = None


class DocumentListResponse(BaseModel):
    documents: List[DocumentRecord]
    count: int


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ExercisesResponse(BaseModel):
    file_name: str
    exercises: Dict[str, Any] = Field(..., description="Model output, returned unvalidated")
    trace_id: Optional[str] = None


class SolutionRequest(BaseModel):
    question: str = Field(..., min_length=1, description="Exercise text")
    context: Optional[str] = Field(None, description="Surrounding document markup")


class SolutionResponse(BaseModel):
    solution: Dict[str, Any] = Field(..., description="Model output, returned unvalidated")
    trace_id: Optional[str] = None
