"""Request middleware: request IDs, timing headers and one access log line per call."""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from feedenrich.observability.logger import get_logger

logger = get_logger("middleware")

# Polled by load balancers; logged at debug so they do not drown enrichment traffic
QUIET_PATHS = frozenset({"/health"})


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Binds request context for every log line emitted while the request runs.

    Pipeline and store logs written during an ``/enrich`` call carry the same
    ``request_id``, ``method`` and ``path`` as the access line, so a run can be
    traced back to the HTTP call that started it.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        path = request.url.path
        start = time.monotonic()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=path
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e), duration_ms=_elapsed_ms(start))
            raise

        duration_ms = _elapsed_ms(start)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Duration-MS"] = str(duration_ms)

        log = logger.debug if path in QUIET_PATHS else logger.info
        log("request_completed", status=response.status_code, duration_ms=duration_ms)
        return response
