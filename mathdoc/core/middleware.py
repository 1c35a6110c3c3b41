"""Request tracing and access logging middleware."""

import logging
import time
import uuid

from fastapi import Request

from mathdoc.core.logging_utils import sanitize_owner_id

logger = logging.getLogger("mathdoc.access")


def ensure_trace_id(request: Request) -> str:
    """Get or generate trace ID for request."""
    trace_id = getattr(request.state, "trace_id", None)
    if not trace_id:
        trace_id = request.headers.get("X-Trace-ID") or str(uuid.uuid4())
        request.state.trace_id = trace_id
    return trace_id


async def trace_id_middleware(request: Request, call_next):
    """Tag the request with a trace ID and log one line when it completes.

    The owner is only known once the session dependency has run, so it is
    read back from ``request.state`` after the handler returns.
    """
    trace_id = ensure_trace_id(request)
    t0 = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Trace-ID"] = trace_id

    owner_id = getattr(request.state, "owner_id", None)
    logger.info(
        "%s %s -> %d",
        request.method,
        request.url.path,
        response.status_code,
        extra={
            "trace_id": trace_id,
            "owner_id": sanitize_owner_id(owner_id) if owner_id else None,
            "http_status": response.status_code,
            "duration_ms": int((time.perf_counter() - t0) * 1000),
        },
    )
    return response
