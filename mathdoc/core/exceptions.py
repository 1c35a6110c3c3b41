"""Error taxonomy for the conversion pipeline.

Every failure on the conversion path is expressed as a ``ConversionError``
with a ``kind`` drawn from ``ConversionErrorKind``. Per-kind metadata
(default message, HTTP status for API responses, retryability) lives in a
single registry so the retry policy, the API error handlers and the upload
flow all agree on it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ConversionErrorKind(str, Enum):
    """Exhaustive set of conversion failure kinds."""

    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_FORMAT = "unsupported_format"
    PROCESSING_ERROR = "processing_error"
    EMPTY_RESPONSE = "empty_response"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    LOW_CONFIDENCE = "low_confidence"
    NO_MATH_DETECTED = "no_math_detected"
    INVALID_CONTENT = "invalid_content"


@dataclass(frozen=True)
class ErrorSpec:
    """Specification for a single error kind."""

    message: str  # Default user-facing message
    http_status: int
    category: str  # "client_error" or "server_error"
    retryable: bool  # True if the retry policy may try again


ERROR_SPECS: dict[ConversionErrorKind, ErrorSpec] = {
    ConversionErrorKind.INVALID_CREDENTIALS: ErrorSpec(
        "Invalid API credentials. Please check your app ID and key",
        502,
        "server_error",
        False,
    ),
    ConversionErrorKind.RATE_LIMIT_EXCEEDED: ErrorSpec(
        "API rate limit exceeded. Please try again later",
        429,
        "client_error",
        False,
    ),
    ConversionErrorKind.FILE_TOO_LARGE: ErrorSpec(
        "The file size exceeds the maximum limit",
        413,
        "client_error",
        False,
    ),
    ConversionErrorKind.UNSUPPORTED_FORMAT: ErrorSpec(
        "The file format is not supported",
        415,
        "client_error",
        False,
    ),
    ConversionErrorKind.PROCESSING_ERROR: ErrorSpec(
        "Conversion service error. Please try again later",
        502,
        "server_error",
        True,
    ),
    ConversionErrorKind.EMPTY_RESPONSE: ErrorSpec(
        "The conversion produced no content",
        502,
        "server_error",
        False,
    ),
    ConversionErrorKind.NETWORK_ERROR: ErrorSpec(
        "Could not reach the conversion service",
        502,
        "server_error",
        True,
    ),
    ConversionErrorKind.TIMEOUT: ErrorSpec(
        "The conversion took too long to complete",
        504,
        "server_error",
        False,
    ),
    ConversionErrorKind.LOW_CONFIDENCE: ErrorSpec(
        "The image could not be recognized with enough confidence",
        422,
        "client_error",
        False,
    ),
    ConversionErrorKind.NO_MATH_DETECTED: ErrorSpec(
        "No text or mathematical content detected in the image",
        422,
        "client_error",
        False,
    ),
    ConversionErrorKind.INVALID_CONTENT: ErrorSpec(
        "The request content was invalid or malformed",
        400,
        "client_error",
        False,
    ),
}

RETRYABLE_KINDS = frozenset(kind for kind, spec in ERROR_SPECS.items() if spec.retryable)


def get_spec(kind: ConversionErrorKind) -> ErrorSpec:
    return ERROR_SPECS[kind]


class ConversionError(Exception):
    """Typed conversion failure.

    Attributes:
        kind: Failure kind from ``ConversionErrorKind``
        message: Human-readable message
        details: Optional opaque diagnostic payload (remote body, status, cause)
    """

    def __init__(
        self,
        kind: ConversionErrorKind,
        message: Optional[str] = None,
        details: Any = None,
    ):
        self.kind = ConversionErrorKind(kind)
        self.message = message or get_spec(self.kind).message
        self.details = details
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"ConversionError(kind={self.kind.value!r}, message={self.message!r})"

    @property
    def spec(self) -> ErrorSpec:
        return get_spec(self.kind)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def http_status(self) -> int:
        return self.spec.http_status

    @property
    def error_code(self) -> str:
        return self.kind.value.upper()

    @property
    def user_message(self) -> str:
        """Single message shown to a user after a failed upload."""
        return f"Error: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format."""
        detail = self.details if isinstance(self.details, str) else None
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "status": self.http_status,
            "code": self.error_code,
            "detail": detail,
            "category": self.spec.category,
            "retryable": self.retryable,
            "user_message": self.user_message,
        }


class GenerationError(Exception):
    """Generative text service returned no usable JSON object.

    Args:
        message: What went wrong
        details: Additional context (status code, truncated body)
    """

    http_status = 502
    error_code = "GENERATION_FAILED"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "status": self.http_status,
            "code": self.error_code,
            "detail": self.details.get("reason"),
            "category": "server_error",
            "retryable": False,
        }
