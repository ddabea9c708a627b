"""HTTP middleware: request correlation and access logging."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from vectors_gateway.utils.logging import log_request, reset_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Probe endpoints are polled constantly; their access lines go to DEBUG
_PROBE_PATHS = frozenset({"/health", "/ready", "/api/v1/health", "/api/v1/ready"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the duration of the request and log the outcome.

    The id is taken from the incoming X-Request-ID header when present and
    echoed back on the response together with the processing time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = set_request_id(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - started) * 1000

            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                level=logging.DEBUG if request.url.path in _PROBE_PATHS else logging.INFO,
                client_ip=request.client.host if request.client else None,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
            return response
        finally:
            reset_request_id(token)
