"""Request logging middleware."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log method, path, status_code, duration_ms, and request_id for every request.

    For streaming responses the duration covers time to first byte only;
    generation keeps running after the response headers are sent.

    Usage:
        app.add_middleware(RequestLoggingMiddleware)
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = getattr(request.state, "request_id", None)
        start_time = time.time()

        response: Response = await call_next(request)

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"http_request: method={request.method} path={request.url.path} "
            f"status={response.status_code} duration_ms={duration_ms} request_id={request_id}"
        )
        return response
