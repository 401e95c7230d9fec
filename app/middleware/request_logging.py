import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger("app.middleware.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request.

    Response bodies are never read here, so streamed downloads pass
    through without buffering.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "%s %s query=%s status=%s duration_ms=%.2f",
            request.method.upper(),
            request.url.path,
            dict(request.query_params),
            response.status_code,
            duration_ms,
        )
        return response
