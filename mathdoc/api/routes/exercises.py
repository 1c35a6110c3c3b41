"""Exercise extraction and solution generation endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from mathdoc.api.schemas import (
    ExercisesResponse,
    ProblemDetail,
    SolutionRequest,
    SolutionResponse,
)
from mathdoc.core.dependencies import get_document_resolver, get_llm_client, get_session
from mathdoc.core.logging_utils import sanitize_owner_id
from mathdoc.pipeline.clients.llm_client import LLMClient
from mathdoc.services.document_resolver import DocumentResolver
from mathdoc.services.session import SessionContext

router = APIRouter(prefix="/v1", tags=["exercises"])
logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    401: {"description": "No user", "model": ProblemDetail},
    404: {"description": "Document not found", "model": ProblemDetail},
    502: {"description": "Generation failed", "model": ProblemDetail},
}


@router.post(
    "/documents/{file_name}/exercises",
    response_model=ExercisesResponse,
    responses=_ERROR_RESPONSES,
)
async def extract_exercises(
    file_name: str,
    request: Request,
    session: SessionContext = Depends(get_session),
    resolver: DocumentResolver = Depends(get_document_resolver),
    llm: LLMClient = Depends(get_llm_client),
):
    owner_id = session.require_owner_id()
    trace_id = getattr(request.state, "trace_id", None)

    record = await resolver.resolve_one(owner_id, file_name)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No converted markup for {file_name}",
        )

    logger.info(
        "Extracting exercises",
        extra={
            "trace_id": trace_id,
            "owner_id": sanitize_owner_id(owner_id),
            "file_name": record.id,
        },
    )
    exercises = await llm.extract_exercises(record.content)
    return ExercisesResponse(file_name=record.id, exercises=exercises, trace_id=trace_id)


@router.post(
    "/solutions",
    response_model=SolutionResponse,
    responses={401: _ERROR_RESPONSES[401], 502: _ERROR_RESPONSES[502]},
)
async def generate_solution(
    body: SolutionRequest,
    request: Request,
    session: SessionContext = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
):
    session.require_owner_id()
    solution = await llm.generate_solution(body.question, body.context)
    return SolutionResponse(solution=solution, trace_id=getattr(request.state, "trace_id", None))
