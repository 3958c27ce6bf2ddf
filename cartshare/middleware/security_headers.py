from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cartshare.core.config import settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response.

    HSTS is only meaningful over TLS and is skipped for plain HTTP requests.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self.headers = {
            "Content-Security-Policy": settings.CONTENT_SECURITY_POLICY,
            "X-Frame-Options": settings.X_FRAME_OPTIONS,
            "X-Content-Type-Options": settings.X_CONTENT_TYPE_OPTIONS,
            "Referrer-Policy": settings.REFERRER_POLICY,
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        if request.url.scheme == "https":
            response.headers.setdefault("Strict-Transport-Security", settings.STRICT_TRANSPORT_SECURITY)
        return response
