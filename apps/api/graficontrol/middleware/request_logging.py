from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from graficontrol.metrics import observe_http_request, resolve_http_path_label


logger = logging.getLogger("graficontrol.request")

_QUIET_PATHS = frozenset({"/health", "/metrics"})


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if path in _QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one ``http.request`` line per request and feeds the HTTP metrics."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            # Route templates are only known after routing, so resolve the label last.
            path = resolve_http_path_label(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            observe_http_request(method=request.method, path=path, status=status_code, duration=duration_ms / 1000)
            logger.log(
                _level_for(path, status_code),
                "http.request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
        return response
