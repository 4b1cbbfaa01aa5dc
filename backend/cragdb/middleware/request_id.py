"""
CragDB Backend — Request ID Middleware
========================================

What:  Assigns every request a correlation id and returns it in X-Request-ID.
How:   A client-supplied X-Request-ID is kept (end-to-end tracing from the
       gateway); otherwise a short random id is generated. The id lives in a
       ContextVar so loggers and error handlers can read it anywhere.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
