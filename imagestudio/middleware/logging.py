"""
Logging middleware for request/response logging.

Logs all HTTP requests with timing and records request metrics.
"""
import time
import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from imagestudio.metrics import track_request

logger = structlog.get_logger()


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests with timing and context.

    Adds: route, method, duration_ms, status to every log.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        route = request.url.path
        request_logger = logger.bind(
            route=route,
            method=request.method,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            request_logger.error(
                "request_failed",
                status_code=500,
                duration_ms=round(duration * 1000, 2),
                error=str(e)
            )
            track_request(request.method, _endpoint_label(request), 500, duration)
            raise

        duration = time.time() - start_time

        request_logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )
        track_request(request.method, _endpoint_label(request), response.status_code, duration)

        return response


def _endpoint_label(request: Request) -> str:
    # Route template keeps metric cardinality bounded (/orders/{order_no})
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"
