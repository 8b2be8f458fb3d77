# slotbook/core/middleware.py
"""HTTP middleware: correlation ids and request logging"""
import uuid
import time
import logging
from starlette.requests import Request

from slotbook.utils.my_logging import bind_correlation_id, reset_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def correlation_id_middleware(request: Request, call_next):
    """Reuse the caller's correlation id or mint one, and echo it back"""
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    # Everything logged while handling the request is tagged with this id
    token = bind_correlation_id(correlation_id)
    try:
        response = await call_next(request)
    finally:
        reset_correlation_id(token)

    response.headers[CORRELATION_HEADER] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    started = time.perf_counter()
    context = {
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else "unknown",
    }

    logger.info(f"→ {request.method} {request.url.path}", extra=context)

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"✗ {request.method} {request.url.path} failed", extra=context)
        raise

    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"← {request.method} {request.url.path} {response.status_code} in {duration_ms}ms",
        extra={**context, "status_code": response.status_code, "duration_ms": duration_ms}
    )
    return response
