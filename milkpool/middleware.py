"""FastAPI middleware for cross-cutting concerns."""

import logging
import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from milkpool.logging_config import correlation_id_var

logger = logging.getLogger("milkpool.access")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Attaches a correlation ID to every request and logs its outcome.

    The ID comes from ``X-Correlation-ID`` when the caller sends one, else a
    new UUID4. It is stored in a ``ContextVar`` for the request's log records,
    echoed back in the response headers, and included in the single access log
    line written per request.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            logger.info(
                "%s %s -> %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return response
        finally:
            correlation_id_var.reset(token)
