"""
Access log and correlation headers.

Every response, including a 500 produced from an exception that escaped
the route and its error handlers, leaves with:

    X-Request-ID     incoming header if the caller sent one, else generated
    X-Process-Time   wall time spent below this middleware, e.g. "3.2ms"

One `[http]` line is logged per request; probe and asset paths only at
DEBUG so a polling load balancer does not flood the log.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storedemo.app.core.errors import build_error_response
from storedemo.app.core.logging_config import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

QUIET_PATHS = ("/healthz", "/favicon.ico", "/robots.txt")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: access log, request context, correlation headers."""

    def __init__(self, app, *, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path
        set_request_context(
            request_id=request_id, client_ip=client_ip, endpoint=path, method=request.method,
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.critical(
                "[http] %s %s unhandled %s: %s",
                request.method, path, type(e).__name__, e, exc_info=True,
            )
            response = build_error_response(
                500, "INTERNAL_ERROR", str(e) if self.debug else "Internal server error",
            )
        duration_ms = _elapsed_ms(start)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"

        if path in QUIET_PATHS:
            level = logging.DEBUG
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "[http] %s %s %d %.1fms ip=%s",
            request.method, path, response.status_code, duration_ms, client_ip,
            extra={"duration_ms": duration_ms, "status_code": response.status_code, "endpoint": path},
        )

        clear_request_context()
        return response
