"""Request logging with correlation ids.

The gateway may send ``X-Correlation-ID``; it is adopted, otherwise one is
minted. Every log line of the request carries it and the response echoes
it back, including 4xx/5xx responses produced by the routes.
"""

import time
from typing import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from certanchor.application.observability.correlation import adopt_correlation_id

CORRELATION_HEADER = "X-Correlation-ID"

logger = structlog.get_logger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = adopt_correlation_id(request.headers.get(CORRELATION_HEADER))
        log = logger.bind(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
            caller=request.headers.get("X-Caller-Subject"),
        )
        started = time.perf_counter()
        log.debug("request_started")

        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception(
                "request_failed",
                duration_ms=_elapsed_ms(started),
                error_type=type(exc).__name__,
            )
            raise

        response.headers[CORRELATION_HEADER] = correlation_id
        log.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
        )
        return response
