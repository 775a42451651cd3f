from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from common_core.logging_setup import request_id_ctx

log = logging.getLogger("windtrack.access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every request with an X-Request-Id and writes one access log line."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        started = time.perf_counter()
        status = 500
        try:
            resp: Response = await call_next(request)
            status = resp.status_code
            resp.headers["X-Request-Id"] = rid
            return resp
        finally:
            log.info(
                "http_request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                },
            )
            request_id_ctx.reset(token)
