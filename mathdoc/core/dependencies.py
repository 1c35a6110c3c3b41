"""FastAPI dependency injection functions."""

from typing import Optional

from fastapi import Header, HTTPException, Request, status

from mathdoc.core.config import OWNER_ID_MAX_LENGTH
from mathdoc.pipeline.clients.llm_client import LLMClient
from mathdoc.services.document_cache import DocumentCache
from mathdoc.services.document_resolver import DocumentResolver
from mathdoc.services.session import SessionContext, UserProfile
from mathdoc.services.upload_service import UploadService


def _from_state(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} unavailable",
        )
    return value


async def get_upload_service(request: Request) -> UploadService:
    return _from_state(request, "upload_service", "Upload service")


async def get_document_resolver(request: Request) -> DocumentResolver:
    return _from_state(request, "document_resolver", "Document storage")


async def get_document_cache(request: Request) -> DocumentCache:
    return _from_state(request, "document_cache", "Document cache")


async def get_llm_client(request: Request) -> LLMClient:
    return _from_state(request, "llm_client", "Exercise generation")


async def get_session(
    request: Request,
    x_user_id: Optional[str] = Header(None, max_length=OWNER_ID_MAX_LENGTH),
) -> SessionContext:
    """Session for the calling user, identified by the X-User-ID header.

    Returns an anonymous session when the header is missing; operations
    that need an owner call ``require_owner_id``. The request log picks
    up the owner through ``request.state.owner_id``.
    """
    session = SessionContext()

    def bind_owner(user: Optional[UserProfile]) -> None:
        request.state.owner_id = user.uid if user else None

    session.subscribe(bind_owner)
    if x_user_id and x_user_id.strip():
        session.set_user(UserProfile(uid=x_user_id.strip()))
    return session
