"""FastAPI application entry point."""

from dotenv import load_dotenv

load_dotenv()

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mathdoc.api.routes import documents, exercises, health
from mathdoc.core.error_handlers import (
    handle_conversion_error,
    handle_generation_error,
    handle_http_error,
    handle_not_signed_in,
    handle_unknown_error,
    handle_validation_error,
)
from mathdoc.core.exceptions import ConversionError, GenerationError
from mathdoc.core.lifespan import lifespan
from mathdoc.core.logging_config import configure_structured_logging
from mathdoc.core.middleware import trace_id_middleware
from mathdoc.core.settings import get_app_settings
from mathdoc.services.session import NotSignedInError

app_settings = get_app_settings()
configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
logger = logging.getLogger(__name__)


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Math Document Ingestion API",
        version="1.0.0",
        description="Converts uploaded PDFs and images to math markup",
        lifespan=lifespan if with_lifespan else None,
    )

    # 1. Register Middleware
    app.middleware("http")(trace_id_middleware)

    # 2. Register Exception Handlers
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(ConversionError, handle_conversion_error)
    app.add_exception_handler(GenerationError, handle_generation_error)
    app.add_exception_handler(NotSignedInError, handle_not_signed_in)
    app.add_exception_handler(Exception, handle_unknown_error)

    # Routes
    app.include_router(health.router)
    app.include_router(documents.router)
    app.include_router(exercises.router)
    return app


app = create_app()
