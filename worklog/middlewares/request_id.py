from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
logger = logging.getLogger("worklog.request")

# Polled by health checks and scrapers; only logged at DEBUG.
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it completes."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{elapsed_ms:.2f}ms")

            data = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
            }
            # Set by the auth dependency, which runs outside this context.
            principal = getattr(request.state, "principal", None)
            if principal:
                data["principal"] = principal
            level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
            logger.log(level, "request.completed", extra={"extra_data": data})
            return response
        finally:
            request_id_ctx_var.reset(token)
