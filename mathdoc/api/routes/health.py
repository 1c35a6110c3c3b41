from fastapi import APIRouter

from mathdoc.api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    return HealthResponse(status="healthy", service="mathdoc-ingest", version="1.0.0")
