"""
Middleware for correlation id propagation and request metrics.

This middleware:
- Forwards the X-Request-ID header or generates a new correlation id
- Stores it in the logging context and on request.state
- Logs request start/completion with latency and records HTTP metrics
- Echoes the id in the X-Request-ID response header
"""
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import clear_triage_context, generate_request_id, get_logger, set_request_id
from .metrics import record_http_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a correlation id to every request and its logs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()

        set_request_id(request_id)
        request.state.request_id = request_id

        start_time = time.time()
        request.state.start_time = start_time
        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
                duration_seconds=process_time,
            )
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                latency_ms=int(process_time * 1000),
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            process_time = time.time() - start_time
            record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=500,
                duration_seconds=process_time,
            )
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=int(process_time * 1000),
                exc_info=True,
            )
            raise
        finally:
            set_request_id(None)
            clear_triage_context()
