"""Document upload and listing endpoints."""

import logging
import time

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status

from mathdoc.api.schemas import ConvertResponse, DocumentListResponse, ProblemDetail
from mathdoc.core.config import MAX_UPLOAD_SIZE_BYTES
from mathdoc.core.dependencies import (
    get_document_cache,
    get_document_resolver,
    get_session,
    get_upload_service,
)
from mathdoc.core.logging_utils import sanitize_owner_id
from mathdoc.services.document_cache import DocumentCache
from mathdoc.services.document_resolver import DocumentResolver
from mathdoc.services.session import SessionContext
from mathdoc.services.upload_service import UploadService, validate_upload

router = APIRouter(prefix="/v1/documents", tags=["documents"])
logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    401: {"description": "No user", "model": ProblemDetail},
    413: {"description": "File too large", "model": ProblemDetail},
    415: {"description": "Unsupported format", "model": ProblemDetail},
    422: {"description": "Validation or recognition error", "model": ProblemDetail},
    502: {"description": "Conversion service error", "model": ProblemDetail},
    504: {"description": "Conversion timed out", "model": ProblemDetail},
}


@router.post("", response_model=ConvertResponse, responses=_ERROR_RESPONSES)
async def upload_document(
    request: Request,
    file: UploadFile = File(..., description="PDF or image file"),
    session: SessionContext = Depends(get_session),
    service: UploadService = Depends(get_upload_service),
):
    owner_id = session.require_owner_id()
    trace_id = getattr(request.state, "trace_id", None)
    file_name = file.filename or f"upload-{int(time.time() * 1000)}.pdf"

    logger.info(
        "[NEW UPLOAD] owner=%s file=%s",
        sanitize_owner_id(owner_id),
        file_name,
        extra={"trace_id": trace_id},
    )

    data = await file.read(MAX_UPLOAD_SIZE_BYTES + 1)
    if len(data) > MAX_UPLOAD_SIZE_BYTES:
        validate_upload(file_name, file.size or len(data), file.content_type)
    result = await service.upload_and_convert(owner_id, file_name, data, file.content_type)

    return ConvertResponse(
        file_name=result.file_name,
        title=result.title,
        content=result.markup,
        processing_time_seconds=result.processing_time_seconds,
        trace_id=trace_id,
    )


@router.get("", response_model=DocumentListResponse, responses={401: _ERROR_RESPONSES[401]})
async def list_documents(
    force_refresh: bool = Query(False, description="Bypass the local mirror"),
    session: SessionContext = Depends(get_session),
    resolver: DocumentResolver = Depends(get_document_resolver),
):
    owner_id = session.require_owner_id()
    documents = await resolver.resolve_all(owner_id, force_refresh=force_refresh)
    return DocumentListResponse(documents=documents, count=len(documents))


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT, responses={401: _ERROR_RESPONSES[401]})
async def clear_document_cache(
    session: SessionContext = Depends(get_session),
    cache: DocumentCache = Depends(get_document_cache),
):
    await cache.clear(session.require_owner_id())
    return Response(status_code=status.HTTP_204_NO_CONTENT)
