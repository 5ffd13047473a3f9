"""
Request correlation for the FeedLens API.

Every request gets a request id and a correlation id (taken from the
``x-request-id`` / ``x-correlation-id`` headers when the caller sends them),
bound to contextvars for the duration of the request so log lines emitted
while ingesting or answering carry them. Both ids are echoed on the response.
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from feedlens.core.structured_logging import correlation_id_var, request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"
CORRELATION_ID_HEADER = "x-correlation-id"


def _incoming_or_new(request: Request, header: str) -> str:
    return request.headers.get(header) or uuid.uuid4().hex


class CorrelationMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = _incoming_or_new(request, REQUEST_ID_HEADER)
        corr_id = _incoming_or_new(request, CORRELATION_ID_HEADER)
        tokens = (request_id_var.set(req_id), correlation_id_var.set(corr_id))

        start = time.perf_counter()
        status_code = None
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            logger.info(
                "request_completed",
                extra={
                    "http.method": request.method,
                    "http.path": request.url.path,
                    "http.status_code": status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            request_id_var.reset(tokens[0])
            correlation_id_var.reset(tokens[1])

        response.headers[REQUEST_ID_HEADER] = req_id
        response.headers[CORRELATION_ID_HEADER] = corr_id
        return response
