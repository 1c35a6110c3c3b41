import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mathdoc.pipeline.clients.llm_client import LLMClient
from mathdoc.pipeline.clients.mathpix_client import MathpixClient
from mathdoc.pipeline.orchestrator import ConversionOrchestrator
from mathdoc.services.artifact_store import ArtifactStore
from mathdoc.services.document_cache import create_document_cache_from_env
from mathdoc.services.document_resolver import DocumentResolver
from mathdoc.services.s3_client import create_object_storage_from_env
from mathdoc.services.upload_service import UploadService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""

    app.state.document_cache = create_document_cache_from_env()
    app.state.upload_service = None
    app.state.document_resolver = None
    app.state.llm_client = LLMClient()
    mathpix_client = None

    logger.info("Initializing object storage...")
    try:
        store = ArtifactStore(create_object_storage_from_env())
        mathpix_client = MathpixClient(artifact_store=store)
        app.state.upload_service = UploadService(store, ConversionOrchestrator(mathpix_client))
        app.state.document_resolver = DocumentResolver(store, app.state.document_cache)
        logger.info("Object storage ready")
    except Exception as e:
        logger.error(f"Object storage initialization failed: {e}", exc_info=True)
        logger.warning("Application will continue without remote storage")

    if mathpix_client is not None and not mathpix_client.has_credentials:
        logger.warning("Conversion service credentials are not configured")
    if not app.state.llm_client.api_key:
        logger.warning("Generative text service API key is not configured")

    yield

    if mathpix_client is not None:
        logger.info("Closing conversion client...")
        await mathpix_client.aclose()
