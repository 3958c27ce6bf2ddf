from __future__ import annotations

import math

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cartshare.core.logging import get_logger
from cartshare.core.rate_limiter import RateLimitExceeded
from cartshare.services.exceptions import ServiceError

logger = get_logger("cartshare.errors")


def error_body(detail: str, code: str, **extra) -> dict:
    return {"error": detail, "code": code, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Service failure",
                extra={"path": request.url.path, "code": exc.code, "detail": exc.detail},
            )
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail, exc.code))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_body(
                "Invalid request payload",
                "validation_error",
                details=jsonable_encoder(exc.errors()),
            ),
        )

    @app.exception_handler(RateLimitExceeded)
    async def handle_rate_limited(_: Request, exc: RateLimitExceeded) -> JSONResponse:
        retry_after = max(1, math.ceil(exc.reset_in))
        return JSONResponse(
            status_code=429,
            content=error_body("Too many requests, try again later", "rate_limited"),
            headers={"Retry-After": str(retry_after)},
        )
