"""Remote artifact storage keyed by owner and file name.

Layout:
    users/{owner_id}/mmd/{file_name}   converted markup (canonical)
    uploads/{owner_id}/{file_name}     uploaded sources

The remote write is authoritative. The local mirror is not touched here;
it is refreshed by the document resolver on the next listing.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from mathdoc.core.config import (
    CREATED_AT_METADATA,
    FILE_NAME_MAX_LENGTH,
    MARKUP_CONTENT_TYPE,
    MARKUP_DIR,
    UPLOADS_PREFIX,
    USERS_PREFIX,
)
from mathdoc.core.exceptions import ConversionError, ConversionErrorKind
from mathdoc.core.logging_utils import sanitize_owner_id
from mathdoc.pipeline.models.dto import StoredArtifact
from mathdoc.services.s3_client import ObjectStorage

logger = logging.getLogger(__name__)


def check_path_segment(value: str, field: str) -> str:
    if (
        not value
        or not value.strip()
        or "/" in value
        or value in {".", ".."}
        or len(value) > FILE_NAME_MAX_LENGTH
    ):
        raise ConversionError(
            ConversionErrorKind.INVALID_CONTENT,
            f"Invalid {field}: {value!r}",
        )
    return value


def markup_prefix(owner_id: str) -> str:
    return f"{USERS_PREFIX}/{check_path_segment(owner_id, 'owner id')}/{MARKUP_DIR}"


def markup_key(owner_id: str, file_name: str) -> str:
    return f"{markup_prefix(owner_id)}/{check_path_segment(file_name, 'file name')}"


def upload_key(owner_id: str, file_name: str) -> str:
    owner = check_path_segment(owner_id, "owner id")
    return f"{UPLOADS_PREFIX}/{owner}/{check_path_segment(file_name, 'file name')}"


class ArtifactStore:
    def __init__(self, storage: ObjectStorage):
        self.storage = storage

    async def put(self, owner_id: str, file_name: str, markup: str) -> str:
        """Write markup to the canonical path. Overwrites silently."""
        key = markup_key(owner_id, file_name)
        try:
            artifact = StoredArtifact(owner_id=owner_id, file_name=file_name, markup=markup)
        except ValidationError as e:
            raise ConversionError(
                ConversionErrorKind.EMPTY_RESPONSE,
                "Refusing to store empty markup",
                details=e.errors(),
            ) from e

        try:
            await self.storage.put_bytes(
                key,
                artifact.markup.encode("utf-8"),
                MARKUP_CONTENT_TYPE,
                metadata={CREATED_AT_METADATA: f"{artifact.created_at:.3f}"},
            )
        except Exception as e:
            logger.error(
                f"Failed to store artifact: {e}",
                extra={"owner_id": sanitize_owner_id(owner_id), "file_name": file_name},
            )
            raise ConversionError(
                ConversionErrorKind.NETWORK_ERROR,
                "Failed to store converted markup",
                details=repr(e),
            ) from e

        logger.info(
            "Stored artifact",
            extra={"owner_id": sanitize_owner_id(owner_id), "file_name": file_name},
        )
        return key

    async def list(self, owner_id: str) -> list[str]:
        """File names stored for ``owner_id``.

        An empty list means no documents; unreachable storage raises.
        """
        prefix = markup_prefix(owner_id)
        try:
            return await self.storage.list_names(prefix)
        except Exception as e:
            logger.error(
                f"Failed to list artifacts: {e}",
                extra={"owner_id": sanitize_owner_id(owner_id)},
            )
            raise ConversionError(
                ConversionErrorKind.NETWORK_ERROR,
                "Remote storage listing failed",
                details=repr(e),
            ) from e

    async def fetch_path(self, key: str) -> str:
        try:
            return await self.storage.fetch_text(key)
        except Exception as e:
            raise ConversionError(
                ConversionErrorKind.NETWORK_ERROR,
                f"Failed to fetch {key}",
                details=repr(e),
            ) from e

    async def put_source(
        self, owner_id: str, file_name: str, data: bytes, content_type: str
    ) -> str:
        """Upload a source document and return a URL the converter can fetch."""
        key = upload_key(owner_id, file_name)
        try:
            await self.storage.put_bytes(key, data, content_type)
            return await self.storage.presigned_url(key)
        except Exception as e:
            logger.error(
                f"Failed to upload source: {e}",
                extra={"owner_id": sanitize_owner_id(owner_id), "file_name": file_name},
            )
            raise ConversionError(
                ConversionErrorKind.NETWORK_ERROR,
                "Failed to upload source document",
                details=repr(e),
            ) from e
