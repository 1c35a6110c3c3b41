from __future__ import annotations

import asyncio
import logging
import time
from pathlib import PurePosixPath
from typing import Awaitable, Callable, Optional, TypeVar

from mathdoc.core.config import (
    CONFIDENCE_THRESHOLD,
    IMAGE_EXTENSIONS,
    POLL_INTERVAL_SECONDS,
    POLL_MAX_ATTEMPTS,
)
from mathdoc.core.exceptions import ConversionError, ConversionErrorKind
from mathdoc.core.logging_utils import sanitize_owner_id, sanitize_url
from mathdoc.pipeline.clients.mathpix_client import MathpixClient
from mathdoc.pipeline.models.dto import ConversionJob, JobStatus
from mathdoc.pipeline.processors.markup_normalizer import normalize_markup
from mathdoc.pipeline.resilience.retry import RetryConfig, SleepFunc, with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_image_file(file_name: str) -> bool:
    suffix = PurePosixPath(file_name).suffix.lower().lstrip(".")
    return suffix in IMAGE_EXTENSIONS


async def _typed(step: str, operation: Callable[[], Awaitable[T]]) -> T:
    """Run a step, coercing any untyped failure to processing_error."""
    try:
        return await operation()
    except ConversionError:
        raise
    except Exception as e:
        raise ConversionError(
            ConversionErrorKind.PROCESSING_ERROR,
            f"{step} failed",
            details=repr(e),
        ) from e


class ConversionOrchestrator:
    """Turns an uploaded source into canonical markup.

    Images go through synchronous text recognition; everything else is
    submitted as an async document job, polled to completion and downloaded
    (the download persists the artifact). Both paths run under the retry
    policy. Every exit is either markup or a ``ConversionError``.
    """

    def __init__(
        self,
        client: MathpixClient,
        *,
        retry_config: Optional[RetryConfig] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_max_attempts: int = POLL_MAX_ATTEMPTS,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.client = client
        self.retry_config = retry_config or RetryConfig()
        self.poll_interval = poll_interval
        self.poll_max_attempts = poll_max_attempts
        self.confidence_threshold = confidence_threshold
        self._sleep = sleep

    async def convert(self, source_url: str, owner_id: str, file_name: str) -> str:
        """Convert the document at ``source_url`` and return its markup."""
        if not self.client.has_credentials:
            raise ConversionError(
                ConversionErrorKind.INVALID_CREDENTIALS,
                "Conversion service credentials not configured",
            )

        t0 = time.perf_counter()
        log_extra = {"owner_id": sanitize_owner_id(owner_id), "file_name": file_name}
        logger.info(
            "Starting conversion of %s", sanitize_url(source_url), extra=log_extra
        )

        try:
            if is_image_file(file_name):
                markup = await with_retry(
                    lambda: self._recognize_image(source_url),
                    self.retry_config,
                    sleep=self._sleep,
                )
            else:
                markup = await with_retry(
                    lambda: self._convert_document(source_url, owner_id, file_name),
                    self.retry_config,
                    sleep=self._sleep,
                )
        except ConversionError as e:
            logger.warning(
                "Conversion failed: %s",
                e.message,
                extra={**log_extra, "error_code": e.error_code},
            )
            raise
        except Exception as e:
            logger.exception("Unexpected conversion failure", extra=log_extra)
            raise ConversionError(
                ConversionErrorKind.PROCESSING_ERROR,
                "Conversion processing error",
                details=repr(e),
            ) from e

        logger.info(
            "Conversion finished",
            extra={**log_extra, "duration_ms": int((time.perf_counter() - t0) * 1000)},
        )
        return markup

    async def _recognize_image(self, image_url: str) -> str:
        result = await _typed(
            "Text recognition", lambda: self.client.recognize_image(image_url)
        )

        if result.error:
            raise ConversionError(
                ConversionErrorKind.PROCESSING_ERROR,
                f"Text recognition error: {result.error}",
                details=result.model_dump(),
            )

        if result.confidence is not None and result.confidence < self.confidence_threshold:
            raise ConversionError(
                ConversionErrorKind.LOW_CONFIDENCE,
                f"Low confidence in text recognition: {result.confidence}",
                details={"confidence": result.confidence},
            )

        if not result.text and not result.latex_styled:
            raise ConversionError(ConversionErrorKind.NO_MATH_DETECTED)

        markup = normalize_markup(result.latex_styled or result.text)
        if not markup:
            raise ConversionError(
                ConversionErrorKind.EMPTY_RESPONSE,
                "Failed to convert recognition result to markup",
            )
        return markup

    async def _convert_document(self, source_url: str, owner_id: str, file_name: str) -> str:
        job = await _typed("Job submission", lambda: self.client.submit_conversion(source_url))
        job = await _typed("Status check", lambda: self._wait_for_completion(job))
        return await _typed(
            "Markup download",
            lambda: self.client.download_artifact(job.job_id, owner_id, file_name),
        )

    async def _wait_for_completion(self, job: ConversionJob) -> ConversionJob:
        for attempt in range(1, self.poll_max_attempts + 1):
            response = await self.client.poll_status(job.job_id)
            job = job.model_copy(
                update={"status": JobStatus.from_remote(response.status), "error": response.error}
            )

            if job.terminal:
                if job.status is JobStatus.ERRORED:
                    raise ConversionError(
                        ConversionErrorKind.PROCESSING_ERROR,
                        job.error or "PDF processing failed",
                        details=response.model_dump(),
                    )
                logger.info(
                    "Job completed after %d checks", attempt, extra={"job_id": job.job_id}
                )
                return job

            if attempt < self.poll_max_attempts:
                await self._sleep(self.poll_interval)

        raise ConversionError(ConversionErrorKind.TIMEOUT, "PDF processing timeout")
