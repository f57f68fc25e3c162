"""
KeepWise Backend — Request ID Middleware
=========================================

What:  Assigns every request a correlation id and returns it as X-Request-ID.
How:   Reuses the caller's X-Request-ID when it is a short token of safe
       characters, otherwise generates 8 hex chars. The id lives in a
       ContextVar for loggers and exception handlers, and in request.state.
When:  Outermost middleware, so every later log line carries the id.

Error envelopes include the same id, so a user reporting
"Failed to save note (request a1b2c3d4)" can be matched to the server log.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# The id is echoed into log lines and response bodies
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(incoming: Optional[str]) -> str:
    """Caller-supplied id if acceptable, else a fresh one."""
    if incoming and _ACCEPTED_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))
        # Not reset afterwards: the outermost 500 handler still reads it
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
