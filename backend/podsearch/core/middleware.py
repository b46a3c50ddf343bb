"""
Request correlation middleware.

Every request gets a trace ID (taken from X-Trace-ID or X-Request-ID when
the caller sends one) and a fresh request ID. Both are bound to the logging
context for the duration of the request and echoed on the response. Start,
completion and failure are logged, and HTTP metrics recorded.
"""
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import bind_request_context, clear_request_context, get_logger
from .metrics import record_http_request

logger = get_logger(__name__)


class TraceIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id, request_id = bind_request_context(
            request.headers.get("X-Trace-ID") or request.headers.get("X-Request-ID")
        )
        method, path = request.method, request.url.path

        # Exception handlers read this to compute latency.
        request.state.start_time = start_time = time.time()
        logger.info(
            "request_started",
            method=method,
            path=path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.time() - start_time
            record_http_request(method, path, 500, elapsed)
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=int(elapsed * 1000),
                exc_info=True,
            )
            raise
        else:
            elapsed = time.time() - start_time
            record_http_request(method, path, response.status_code, elapsed)
            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                latency_ms=int(elapsed * 1000),
            )
            response.headers["X-Trace-ID"] = trace_id
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()
