"""
Prometheus Metrics Middleware.

Tracks request count, duration and status code for every API call.
"""

import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.metrics import track_http_request


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware recording HTTP metrics per route template."""

    # Endpoints to exclude from metrics (to avoid recursion)
    EXCLUDED_PATHS = {"/metrics", "/health"}

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            track_http_request(
                method=request.method,
                endpoint=self._endpoint_label(request),
                status_code=status_code,
                duration_seconds=time.perf_counter() - start_time,
            )

        return response

    @staticmethod
    def _endpoint_label(request: Request) -> str:
        """Route template if one matched, so labels stay low-cardinality."""
        route = request.scope.get("route")
        path = getattr(route, "path", None)
        return path or "unmatched"
