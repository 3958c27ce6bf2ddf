from __future__ import annotations

from typing import Any

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from cartshare.core.config import settings


class _NoOpMetric:
    def labels(self, *args: Any, **kwargs: Any) -> "_NoOpMetric":
        return self

    def observe(self, *_: Any, **__: Any) -> None:
        return None

    def inc(self, *_: Any, **__: Any) -> None:
        return None


def _metric_or_noop(metric_factory: Any) -> Any:
    if not settings.METRICS_ENABLED:
        return _NoOpMetric()
    return metric_factory()


_NS = settings.METRICS_NAMESPACE

REQUEST_LATENCY = _metric_or_noop(
    lambda: Histogram(
        f"{_NS}_http_request_duration_seconds",
        "HTTP request latency in seconds.",
        ["method", "path", "status_code"],
        buckets=settings.METRICS_LATENCY_BUCKETS,
    )
)

REQUEST_COUNT = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_http_requests_total",
        "Total HTTP requests processed.",
        ["method", "path", "status_code"],
    )
)

REQUEST_ERRORS = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_http_errors_total",
        "Total HTTP requests resulting in 4xx/5xx.",
        ["method", "path", "status_code"],
    )
)

LOGIN_ATTEMPTS = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_auth_login_attempts_total",
        "Staff authentication attempts partitioned by outcome.",
        ["outcome"],
    )
)

SHARED_CARTS_CREATED = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_shared_carts_created_total",
        "Shared cart snapshots persisted.",
    )
)

SHORT_CODE_COLLISIONS = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_short_code_collisions_total",
        "Short code candidates rejected by the uniqueness constraint.",
    )
)

SHARED_CART_VIEWS = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_shared_cart_views_total",
        "Shared cart resolutions partitioned by outcome.",
        ["outcome"],
    )
)

STATUS_CHANGES = _metric_or_noop(
    lambda: Counter(
        f"{_NS}_shared_cart_status_changes_total",
        "Shared cart status changes partitioned by target status.",
        ["status"],
    )
)


def normalize_path(request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return request.url.path


def record_request_metrics(request, status_code: int, elapsed: float) -> None:
    method = request.method
    path = normalize_path(request)
    labels = (method, path, str(status_code))
    REQUEST_COUNT.labels(*labels).inc()
    REQUEST_LATENCY.labels(*labels).observe(elapsed)
    if status_code >= 400:
        REQUEST_ERRORS.labels(*labels).inc()


def record_login_attempt(outcome: str) -> None:
    LOGIN_ATTEMPTS.labels(outcome=outcome).inc()


def record_shared_cart_created() -> None:
    SHARED_CARTS_CREATED.inc()


def record_short_code_collision() -> None:
    SHORT_CODE_COLLISIONS.inc()


def record_shared_cart_view(outcome: str) -> None:
    SHARED_CART_VIEWS.labels(outcome=outcome).inc()


def record_status_change(status: str, amount: int = 1) -> None:
    STATUS_CHANGES.labels(status=status).inc(amount)


def export_metrics() -> tuple[bytes, str]:
    if not settings.METRICS_ENABLED:
        return b"", "text/plain; charset=utf-8"
    return generate_latest(), CONTENT_TYPE_LATEST
