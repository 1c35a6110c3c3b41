"""Local durable mirror of each owner's resolved documents.

The mirror lives in a small file-backed key-value store: one JSON file
per (owner, key). Every write replaces the whole value in one atomic
rename, so a reader sees either the previous list or the new one.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from mathdoc.core.config import DOCUMENTS_STORAGE_KEY
from mathdoc.core.logging_utils import sanitize_owner_id
from mathdoc.core.settings import get_cache_settings
from mathdoc.pipeline.models.dto import DocumentRecord
from mathdoc.services.artifact_store import check_path_segment
from mathdoc.utils.io_utils import read_json, write_json_atomic

logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(list[DocumentRecord])


class LocalKeyValueStore:
    """Durable key-value slots, namespaced per owner."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    def _path(self, namespace: str, key: str) -> Path:
        for part in (namespace, key):
            if not part or part in {".", ".."}:
                raise ValueError(f"Invalid cache slot name: {part!r}")
        return self.base_dir / quote(namespace, safe="") / f"{quote(key, safe='')}.json"

    def get(self, namespace: str, key: str) -> Optional[Any]:
        path = self._path(namespace, key)
        if not path.exists():
            return None
        return read_json(path)

    def set(self, namespace: str, key: str, value: Any) -> None:
        write_json_atomic(self._path(namespace, key), value)

    def remove(self, namespace: str, key: str) -> None:
        self._path(namespace, key).unlink(missing_ok=True)


class DocumentCache:
    """Owner-keyed mirror of the last successful remote listing."""

    def __init__(self, store: LocalKeyValueStore, key: str = DOCUMENTS_STORAGE_KEY):
        self.store = store
        self.key = key

    async def load(self, owner_id: str) -> list[DocumentRecord]:
        """Mirrored records, or [] when the slot is missing or unreadable."""
        check_path_segment(owner_id, "owner id")
        try:
            raw = await asyncio.to_thread(self.store.get, owner_id, self.key)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(
                f"Error loading documents: {e}",
                extra={"owner_id": sanitize_owner_id(owner_id)},
            )
            return []

        if raw is None:
            return []

        try:
            return _RECORDS.validate_python(raw)
        except ValidationError as e:
            logger.error(
                f"Discarding malformed document cache: {e.error_count()} errors",
                extra={"owner_id": sanitize_owner_id(owner_id)},
            )
            return []

    async def replace(self, owner_id: str, records: list[DocumentRecord]) -> None:
        """Swap the whole mirror for ``records``. A failed local write is logged, not raised."""
        check_path_segment(owner_id, "owner id")
        payload = _RECORDS.dump_python(records, mode="json")
        try:
            await asyncio.to_thread(self.store.set, owner_id, self.key, payload)
        except OSError as e:
            logger.error(
                f"Error saving documents to local cache: {e}",
                extra={"owner_id": sanitize_owner_id(owner_id)},
            )
            return
        logger.info(
            f"Saved {len(records)} documents to local cache",
            extra={"owner_id": sanitize_owner_id(owner_id)},
        )

    async def clear(self, owner_id: str) -> None:
        check_path_segment(owner_id, "owner id")
        try:
            await asyncio.to_thread(self.store.remove, owner_id, self.key)
        except OSError as e:
            logger.error(
                f"Error clearing document cache: {e}",
                extra={"owner_id": sanitize_owner_id(owner_id)},
            )
            return
        logger.info("Document cache cleared", extra={"owner_id": sanitize_owner_id(owner_id)})


def create_document_cache_from_env() -> DocumentCache:
    return DocumentCache(LocalKeyValueStore(get_cache_settings().cache_dir))
