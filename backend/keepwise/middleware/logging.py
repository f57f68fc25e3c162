"""
KeepWise Backend — Request Logging Middleware
==============================================

What:  One access-log line per HTTP request on the `keepwise.access` logger.
How:   Measures the time spent in the downstream app and logs method, path,
       status, duration, request id and the uid the token verifier resolved
       (`-` when the request never got that far, e.g. a 401).

Level by outcome:
    5xx → ERROR, 4xx → WARNING, otherwise INFO

Privacy:
    Logged:     method, path, status, duration, uid, client IP, request id
    Not logged: request bodies (page text the user highlighted) and the
                Authorization header
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from keepwise.middleware.request_id import request_id_var

logger = logging.getLogger("keepwise.access")

# Probes hit these every few seconds
_QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        # Set by get_current_user on the shared request state
        uid = getattr(request.state, "uid", None) or "-"
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s] uid=%s from %s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            rid,
            uid,
            client_ip,
            extra={
                "request_id": rid,
                "uid": uid,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
