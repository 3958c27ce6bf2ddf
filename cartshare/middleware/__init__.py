"""Custom FastAPI middleware components."""

from .observability import ObservabilityMiddleware
from .request_limit import PayloadLimitMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "ObservabilityMiddleware",
    "PayloadLimitMiddleware",
    "SecurityHeadersMiddleware",
]
