"""Request logging middleware."""
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PREFIXES = ("/v1/health",)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with a request id and its duration.

    Health checks are logged at DEBUG so load balancer polling does not
    drown out API traffic.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        level = logging.DEBUG if request.url.path.startswith(QUIET_PREFIXES) else logging.INFO
        started = time.perf_counter()

        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} "
            f"from {request.client.host if request.client else 'unknown'}",
        )

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        logger.log(
            level,
            f"[{request_id}] {response.status_code} for {request.method} {request.url.path} in {elapsed:.4f}s",
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        return response
