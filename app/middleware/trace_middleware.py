"""
Trace ID Middleware for Request Tracking

Generates or extracts trace IDs from incoming requests and binds them to
structlog context for automatic inclusion in all logs.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add trace ID to all requests for end-to-end tracking.
    
    - Extracts X-Trace-Id from request headers if present
    - Generates new UUID if not present
    - Binds trace_id, method and path to structlog context
    - Adds X-Trace-Id to response headers
    - Logs one request_completed event per request
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        # Extract or generate trace ID
        trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
        
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        
        try:
            response = await call_next(request)
            
            # Add trace ID to response headers for client-side tracking
            response.headers["X-Trace-Id"] = trace_id
            
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return response
        finally:
            # Clean up context after request
            structlog.contextvars.unbind_contextvars("trace_id", "method", "path")
