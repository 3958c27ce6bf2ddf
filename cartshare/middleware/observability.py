from __future__ import annotations

import time
import uuid
from typing import Any, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cartshare.core.logging import get_logger
from cartshare.core.metrics import normalize_path, record_request_metrics
from cartshare.core.rate_limiter import client_ip

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Record request metrics, tag responses with a request id and log failures.

    ``quiet_not_found`` lists route templates whose 404 is an expected answer
    (an unknown share code) and should not produce a client-error log line.
    """

    def __init__(
        self,
        app,
        *,
        log_4xx: bool = True,
        log_5xx: bool = True,
        quiet_not_found: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.logger = get_logger("cartshare.requests")
        self.log_4xx = log_4xx
        self.log_5xx = log_5xx
        self.quiet_not_found = frozenset(quiet_not_found)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            record_request_metrics(request, 500, duration)
            self._log(request, 500, duration, "Unhandled server error", "error")
            raise

        duration = time.perf_counter() - start
        status_code = response.status_code
        record_request_metrics(request, status_code, duration)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)

        if status_code >= 500 and self.log_5xx:
            self._log(request, status_code, duration, "Server error response", "error")
        elif status_code >= 400 and self.log_4xx and not self._is_quiet(request, status_code):
            self._log(request, status_code, duration, "Client error response", "warning")

        return response

    def _is_quiet(self, request: Request, status_code: int) -> bool:
        return status_code == 404 and normalize_path(request) in self.quiet_not_found

    def _log(self, request: Request, status_code: int, duration: float, message: str, level: str) -> None:
        payload: dict[str, Any] = {
            "method": request.method,
            "path": normalize_path(request),
            "status_code": status_code,
            "duration_ms": round(duration * 1000, 3),
            "client_ip": client_ip(request),
            "user_agent": request.headers.get("user-agent"),
            "request_id": getattr(request.state, "request_id", None),
        }
        log_func = getattr(self.logger, level, self.logger.error)
        log_func(message, extra=payload)
