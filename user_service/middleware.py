"""
HTTP request logging middleware.

Logs one line per request with method, path, status code and latency.
Request and response bodies are never logged: they carry passwords and
tokens.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("user_service.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                "%s %s failed after %.2fms", request.method, request.url.path, latency_ms
            )
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s %s %d %.2fms",
            request.method, request.url.path, response.status_code, latency_ms,
        )
        return response
