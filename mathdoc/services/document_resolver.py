"""Rebuilds an owner's document list from remote artifacts.

Artifacts were stored under several naming conventions over time
(``name``, ``base.mmd``, ``base.pdf.mmd``). Each listed artifact is looked
up under those candidate paths in order; lookups for different artifacts
run concurrently, each under its own timeout. Artifacts that time out or
have no readable candidate are dropped from the result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from mathdoc.core.config import MARKUP_SUFFIX, PDF_SUFFIX, RESOLVE_TIMEOUT_SECONDS
from mathdoc.core.exceptions import ConversionError
from mathdoc.core.logging_utils import sanitize_owner_id
from mathdoc.pipeline.models.dto import DocumentRecord
from mathdoc.services.artifact_store import ArtifactStore, markup_key
from mathdoc.services.document_cache import DocumentCache

logger = logging.getLogger(__name__)

_MAX_LEGACY_CANDIDATES = 2


def _strip_markup_suffix(name: str) -> str:
    while name.endswith(MARKUP_SUFFIX) and len(name) > len(MARKUP_SUFFIX):
        name = name[: -len(MARKUP_SUFFIX)]
    return name


def derive_title(file_name: str) -> str:
    """Display title for a stored file name.

    ``calc101.pdf.mmd`` -> ``calc101.pdf``, ``notes.mmd`` -> ``notes``.
    Applying it to its own output changes nothing.
    """
    return _strip_markup_suffix(file_name)


def base_name(file_name: str) -> str:
    """File name without markup or PDF suffixes."""
    name = _strip_markup_suffix(file_name)
    if name.endswith(PDF_SUFFIX) and len(name) > len(PDF_SUFFIX):
        name = name[: -len(PDF_SUFFIX)]
    return name


def candidate_names(file_name: str) -> list[str]:
    """Stored name first, then up to two legacy names, without duplicates."""
    base = base_name(file_name)
    candidates = [file_name]
    for legacy in (f"{base}{MARKUP_SUFFIX}", f"{base}{PDF_SUFFIX}{MARKUP_SUFFIX}"):
        if legacy not in candidates and len(candidates) <= _MAX_LEGACY_CANDIDATES:
            candidates.append(legacy)
    return candidates


class DocumentResolver:
    def __init__(
        self,
        store: ArtifactStore,
        cache: DocumentCache,
        *,
        resolve_timeout: float = RESOLVE_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.cache = cache
        self.resolve_timeout = resolve_timeout

    async def resolve_all(self, owner_id: str, force_refresh: bool = False) -> list[DocumentRecord]:
        """Documents for ``owner_id``, served from the mirror when possible.

        Without ``force_refresh`` a non-empty mirror is returned as is and
        the remote store is not contacted. Otherwise the remote listing is
        resolved and the mirror replaced (or cleared when nothing resolves).
        """
        log_extra = {"owner_id": sanitize_owner_id(owner_id)}

        if not force_refresh:
            cached = await self.cache.load(owner_id)
            logger.info("Loaded %d local documents", len(cached), extra=log_extra)
            if cached:
                return cached

        try:
            names = await self.store.list(owner_id)
        except ConversionError as e:
            logger.error("Error accessing remote storage: %s", e.message, extra=log_extra)
            await self.cache.clear(owner_id)
            return []

        logger.info("Files found in storage: %d", len(names), extra=log_extra)
        if not names:
            await self.cache.clear(owner_id)
            return []

        results = await asyncio.gather(
            *(self._resolve_with_timeout(owner_id, name) for name in names)
        )
        records = [record for record in results if record is not None]
        logger.info(
            "Resolved %d of %d documents", len(records), len(names), extra=log_extra
        )

        if records:
            await self.cache.replace(owner_id, records)
            return records

        await self.cache.clear(owner_id)
        return []

    async def _resolve_with_timeout(self, owner_id: str, file_name: str) -> Optional[DocumentRecord]:
        # wait_for cancels the lookup on timeout; a storage call already
        # running in a worker thread finishes but its result is discarded.
        try:
            return await asyncio.wait_for(
                self.resolve_one(owner_id, file_name), timeout=self.resolve_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out resolving document after %.0fs",
                self.resolve_timeout,
                extra={"owner_id": sanitize_owner_id(owner_id), "file_name": file_name},
            )
            return None

    async def resolve_one(self, owner_id: str, file_name: str) -> Optional[DocumentRecord]:
        """First candidate path with non-empty content wins; None if none does."""
        for candidate in candidate_names(file_name):
            try:
                content = await self.store.fetch_path(markup_key(owner_id, candidate))
            except ConversionError as e:
                logger.debug(
                    "Candidate %s unavailable: %s",
                    candidate,
                    e.message,
                    extra={"file_name": file_name},
                )
                continue

            if not content:
                logger.debug("Empty content at %s", candidate, extra={"file_name": file_name})
                continue

            return DocumentRecord(id=file_name, title=derive_title(file_name), content=content)

        logger.warning(
            "No candidate path resolved",
            extra={"owner_id": sanitize_owner_id(owner_id), "file_name": file_name},
        )
        return None
