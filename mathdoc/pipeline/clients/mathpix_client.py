import json
import logging
from typing import Any, Optional, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from mathdoc.core.config import (
    CONVERTER_CLIENT_TIMEOUT_SECONDS,
    ERROR_BODY_MAX_CHARS,
    PDF_CONVERSION_OPTIONS,
    TEXT_RECOGNITION_OPTIONS,
)
from mathdoc.core.exceptions import ConversionError, ConversionErrorKind
from mathdoc.core.settings import get_converter_settings
from mathdoc.pipeline.models.dto import (
    ConversionJob,
    JobStatus,
    StatusResponse,
    SubmitResponse,
    TextRecognitionResponse,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_STATUS_KINDS = {
    400: ConversionErrorKind.INVALID_CONTENT,
    401: ConversionErrorKind.INVALID_CREDENTIALS,
    413: ConversionErrorKind.FILE_TOO_LARGE,
    415: ConversionErrorKind.UNSUPPORTED_FORMAT,
    429: ConversionErrorKind.RATE_LIMIT_EXCEEDED,
}


class ArtifactWriter(Protocol):
    """Destination for downloaded markup (the artifact store)."""

    async def put(self, owner_id: str, file_name: str, markup: str) -> str: ...


def kind_for_status(status_code: int) -> ConversionErrorKind:
    """Map a non-2xx HTTP status onto the error taxonomy."""
    if status_code in _STATUS_KINDS:
        return _STATUS_KINDS[status_code]
    if 500 <= status_code < 600:
        return ConversionErrorKind.PROCESSING_ERROR
    return ConversionErrorKind.NETWORK_ERROR


def raise_for_conversion_status(response: httpx.Response, endpoint: str) -> None:
    """Raise a typed ConversionError for any non-2xx response."""
    if response.is_success:
        return

    try:
        body = response.text[:ERROR_BODY_MAX_CHARS]
    except Exception:
        body = "Unable to read error response"

    kind = kind_for_status(response.status_code)
    logger.error(
        "Conversion API error on %s: %s %s",
        endpoint,
        response.status_code,
        response.reason_phrase,
        extra={"http_status": response.status_code, "error_code": kind.value.upper()},
    )

    message = None
    if kind is ConversionErrorKind.NETWORK_ERROR:
        message = f"Unexpected error ({response.status_code}): {response.reason_phrase}"
    raise ConversionError(kind, message, details=body)


def _parse(response: httpx.Response, model: Type[ModelT], endpoint: str) -> ModelT:
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConversionError(
            ConversionErrorKind.PROCESSING_ERROR,
            f"Malformed JSON from {endpoint}",
            details=response.text[:ERROR_BODY_MAX_CHARS],
        ) from e

    if not isinstance(payload, dict):
        raise ConversionError(
            ConversionErrorKind.PROCESSING_ERROR,
            f"Unexpected response shape from {endpoint}",
            details=payload,
        )

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ConversionError(
            ConversionErrorKind.PROCESSING_ERROR,
            f"Invalid response from {endpoint}",
            details=e.errors(),
        ) from e


class MathpixClient:
    """Async client for the remote conversion service.

    Submits document jobs, polls their status and downloads the converted
    markup; also exposes the synchronous image recognition endpoint. Every
    failure leaves this class as a ``ConversionError``. The client does not
    loop: polling cadence belongs to the orchestrator.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        *,
        artifact_store: Optional[ArtifactWriter] = None,
        timeout: float = CONVERTER_CLIENT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_converter_settings()
        self.base_url = (base_url or settings.MATHPIX_BASE_URL).rstrip("/")
        self.app_id = app_id if app_id is not None else settings.MATHPIX_APP_ID
        self.app_key = (
            app_key if app_key is not None else settings.MATHPIX_APP_KEY.get_secret_value()
        )
        self.artifact_store = artifact_store
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._ensure_client()
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    @property
    def has_credentials(self) -> bool:
        return bool(self.app_id and self.app_key)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"app_id": self.app_id, "app_key": self.app_key},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._ensure_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise ConversionError(
                ConversionErrorKind.NETWORK_ERROR,
                f"Network error calling {path}: {type(e).__name__}",
                details=str(e),
            ) from e
        raise_for_conversion_status(response, path)
        return response

    async def submit_conversion(self, source_url: str) -> ConversionJob:
        """Submit an async document conversion job."""
        body = {
            "url": source_url,
            "options_json": json.dumps(PDF_CONVERSION_OPTIONS),
        }
        response = await self._request("POST", "/pdf", json=body)
        submitted = _parse(response, SubmitResponse, "/pdf")

        if not submitted.pdf_id:
            raise ConversionError(
                ConversionErrorKind.INVALID_CONTENT,
                "No PDF ID received from conversion service",
                details=submitted.error,
            )

        logger.info("Conversion job accepted", extra={"job_id": submitted.pdf_id})
        return ConversionJob(
            source_url=source_url,
            job_id=submitted.pdf_id,
            status=JobStatus.PROCESSING,
        )

    async def poll_status(self, job_id: str) -> StatusResponse:
        """Single status check. Callers own the polling loop."""
        response = await self._request("GET", f"/pdf/{job_id}")
        status = _parse(response, StatusResponse, "/pdf/status")
        logger.debug(
            "Job status: %s (%s%%)",
            status.status,
            status.percent_done,
            extra={"job_id": job_id},
        )
        return status

    async def download_artifact(self, job_id: str, owner_id: str, file_name: str) -> str:
        """Download converted markup and persist it as the canonical artifact."""
        response = await self._request("GET", f"/pdf/{job_id}.mmd")
        markup = response.text

        if not markup.strip():
            raise ConversionError(
                ConversionErrorKind.EMPTY_RESPONSE,
                "Received empty MMD content from conversion service",
            )

        if self.artifact_store is not None:
            await self.artifact_store.put(owner_id, file_name, markup)

        logger.info(
            "Downloaded %d chars of markup",
            len(markup),
            extra={"job_id": job_id, "file_name": file_name},
        )
        return markup

    async def recognize_image(self, image_url: str) -> TextRecognitionResponse:
        """Synchronous text recognition for a single image."""
        body = {"src": image_url, **TEXT_RECOGNITION_OPTIONS}
        response = await self._request("POST", "/text", json=body)
        result = _parse(response, TextRecognitionResponse, "/text")
        logger.info(
            "Text recognition response: confidence=%s has_text=%s has_latex=%s error=%s",
            result.confidence,
            bool(result.text),
            bool(result.latex_styled),
            result.error,
        )
        return result
