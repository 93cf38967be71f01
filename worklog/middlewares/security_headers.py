from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# JSON only, apart from task photos, which clients may embed.
API_CSP = "default-src 'none'; img-src 'self' data: blob:; frame-ancestors 'none'; base-uri 'none'"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline headers for an API whose payloads hold personal time records."""

    def __init__(self, app, api_prefix: str = "/api/") -> None:  # type: ignore[override]
        super().__init__(app)
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        headers = response.headers
        headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Referrer-Policy", "no-referrer")
        headers.setdefault("Content-Security-Policy", API_CSP)
        if request.url.path.startswith(self.api_prefix):
            # Hours and photos are per user; shared caches must not keep them.
            headers.setdefault("Cache-Control", "private, no-store")
        return response
