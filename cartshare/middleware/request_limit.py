from __future__ import annotations

from typing import Callable

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from cartshare.core.config import settings
from cartshare.core.logging import get_logger
from cartshare.core.rate_limiter import client_ip

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class PayloadLimitMiddleware(BaseHTTPMiddleware):
    """Reject cart submissions and other bodies larger than the configured limit."""

    def __init__(self, app, max_bytes: int | None = None) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes or settings.MAX_REQUEST_SIZE_BYTES
        self.logger = get_logger("cartshare.request_limit")

    async def dispatch(self, request: Request, call_next: Callable):
        if request.method not in _BODY_METHODS:
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_bytes:
            return self._reject(request, int(declared))

        # Chunked bodies carry no length header, so the buffered size is checked too.
        body = await request.body()
        if len(body) > self.max_bytes:
            return self._reject(request, len(body))

        return await call_next(request)

    def _reject(self, request: Request, size: int) -> JSONResponse:
        self.logger.warning(
            "Rejected request exceeding payload limit",
            extra={
                "method": request.method,
                "path": request.url.path,
                "content_length": size,
                "max_bytes": self.max_bytes,
                "client_ip": client_ip(request),
            },
        )
        return JSONResponse(
            {"error": "Request payload too large", "code": "payload_too_large"},
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        )
