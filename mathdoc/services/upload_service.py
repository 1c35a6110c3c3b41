"""Upload a source document and convert it to markup."""

import logging
import time
from dataclasses import dataclass
from pathlib import PurePosixPath

from mathdoc.core.config import ALLOWED_UPLOAD_CONTENT_TYPES, MAX_UPLOAD_SIZE_BYTES, MAX_UPLOAD_SIZE_MB
from mathdoc.core.exceptions import ConversionError, ConversionErrorKind
from mathdoc.core.logging_utils import sanitize_owner_id
from mathdoc.pipeline.orchestrator import ConversionOrchestrator
from mathdoc.services.artifact_store import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    file_name: str
    title: str
    markup: str
    processing_time_seconds: float


def display_title(file_name: str) -> str:
    """File name with its last extension removed."""
    path = PurePosixPath(file_name)
    return path.stem if path.suffix else file_name


def validate_upload(file_name: str, size_bytes: int, content_type: str | None) -> None:
    if size_bytes > MAX_UPLOAD_SIZE_BYTES:
        raise ConversionError(
            ConversionErrorKind.FILE_TOO_LARGE,
            f"File size exceeds {MAX_UPLOAD_SIZE_MB}MB limit "
            f"({size_bytes / 1024 / 1024:.2f}MB)",
        )
    if (content_type or "").lower() not in ALLOWED_UPLOAD_CONTENT_TYPES:
        raise ConversionError(
            ConversionErrorKind.UNSUPPORTED_FORMAT,
            "Invalid file type. Please upload a PDF or image file (JPEG/PNG)",
            details=content_type,
        )
    if size_bytes == 0:
        raise ConversionError(ConversionErrorKind.INVALID_CONTENT, f"Empty file: {file_name}")


class UploadService:
    def __init__(self, store: ArtifactStore, orchestrator: ConversionOrchestrator):
        self.store = store
        self.orchestrator = orchestrator

    async def upload_and_convert(
        self,
        owner_id: str,
        file_name: str,
        data: bytes,
        content_type: str | None,
    ) -> UploadResult:
        t0 = time.perf_counter()
        log_extra = {"owner_id": sanitize_owner_id(owner_id), "file_name": file_name}
        logger.info(
            "Uploading %d bytes (%s)", len(data), content_type, extra=log_extra
        )

        validate_upload(file_name, len(data), content_type)
        source_url = await self.store.put_source(owner_id, file_name, data, content_type)
        markup = await self.orchestrator.convert(source_url, owner_id, file_name)

        return UploadResult(
            file_name=file_name,
            title=display_title(file_name),
            markup=markup,
            processing_time_seconds=time.perf_counter() - t0,
        )
