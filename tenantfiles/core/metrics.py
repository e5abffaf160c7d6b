"""Prometheus collectors for HTTP traffic and storage backends."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

_LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

HTTP_REQUESTS_TOTAL = Counter(
    "tenantfiles_http_requests_total",
    "HTTP requests by route template and status.",
    ["method", "route", "status"],
)
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "tenantfiles_http_request_duration_seconds",
    "HTTP request latency by route template and status.",
    ["method", "route", "status"],
    buckets=_LATENCY_BUCKETS,
)

# outcome is one of: success, failure, not_found
STORAGE_OPERATIONS_TOTAL = Counter(
    "tenantfiles_storage_operations_total",
    "Calls made to local, DMS and object storage backends.",
    ["backend", "operation", "outcome"],
)
FILE_TRANSFER_BYTES_TOTAL = Counter(
    "tenantfiles_file_transfer_bytes_total",
    "Attachment bytes written to or read from storage.",
    ["direction"],
)


def observe_http_request(*, method: str, route: str, status_code: int, duration_ms: float) -> None:
    labels = {"method": method, "route": route, "status": str(status_code)}
    HTTP_REQUESTS_TOTAL.labels(**labels).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(**labels).observe(duration_ms / 1000.0)


def observe_storage_operation(*, backend: str, operation: str, outcome: str) -> None:
    STORAGE_OPERATIONS_TOTAL.labels(backend=backend, operation=operation, outcome=outcome).inc()


def observe_file_transfer(*, direction: str, size: int) -> None:
    if size > 0:
        FILE_TRANSFER_BYTES_TOTAL.labels(direction=direction).inc(size)
