"""Request ID middleware — one ID per request, in logs and responses.

Learn: The ID comes from an incoming X-Request-ID header when a proxy
already assigned one, otherwise a new UUID. It is bound to structlog's
contextvars, so every log line for the request carries it, and echoed
back in the response header so clients can quote it in bug reports.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for logging and log one line per request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response: Response = await call_next(request)
        logger.info(
            "request.completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
