"""
CragDB Backend — Access Log Middleware
========================================

What:  One log line per HTTP request: method, path, status, duration, client,
       and for /graphql the operation name.
How:   Measures the request around `call_next`. The GraphQL layer records the
       executed operation on `request.state.graphql_operation`
       (graphql/schema.py, OperationNameRecorder).
Who:   Logger `cragdb.access`; /health is skipped.

Level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    GraphQL reports most failures with HTTP 200, so domain errors show up
    in the error translation log (graphql/errors.py), not here.

Request bodies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cragdb.middleware.request_id import request_id_var

logger = logging.getLogger("cragdb.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        operation = getattr(request.state, "graphql_operation", None) or "-"
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms op=%s [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            operation,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "graphql_operation": operation,
                "client_ip": client_ip,
            },
        )

        return response
