"""Request tracing middleware."""

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from shared.logging_config import set_correlation_id

CORRELATION_HEADER = 'X-Correlation-ID'


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Binds each request to a correlation id taken from X-Correlation-ID,
    or generated, and echoes it back. Flow runs started by the request
    log under their own run id.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        set_correlation_id(correlation_id)
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            logging.exception("Request failed", extra={"route": route})
            raise

        response.headers[CORRELATION_HEADER] = correlation_id
        logging.info(
            "Request completed",
            extra={
                "route": route,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2)
            }
        )
        return response
