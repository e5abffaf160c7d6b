"""HTTP middleware: request correlation, access logging and response headers."""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from tenantfiles.core.config import get_settings
from tenantfiles.core.metrics import observe_http_request
from tenantfiles.core.request_context import bind_request, new_request_id
from tenantfiles.core.structured_logging import log_json

logger = logging.getLogger(__name__)
settings = get_settings()

REQUEST_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")
MAX_REQUEST_ID_LENGTH = 128

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def incoming_request_id(request: Request) -> str | None:
    """Return a caller supplied correlation ID when it is safe to echo back."""
    for header in REQUEST_ID_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if not value:
            continue
        if len(value) > MAX_REQUEST_ID_LENGTH or any(c in value for c in "\r\n"):
            return None
        return value
    return None


def route_label(request: Request) -> str:
    # Path templates keep metric cardinality bounded; IDs never become labels.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def status_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach static hardening headers; HSTS only for production HTTPS."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        scheme = request.headers.get("x-forwarded-proto") or request.url.scheme
        if settings.environment == "production" and scheme == "https":
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=63072000; includeSubDomains"
            )
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind request ID and tenant to the log context and emit one access line.

    Every request is counted in the HTTP Prometheus metrics under its route
    template. Failures escaping the app are logged as ``request_error`` and
    re-raised.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = incoming_request_id(request) or new_request_id()
        request.state.request_id = request_id
        tenant = (request.headers.get(settings.tenant_header) or "").strip() or None
        fields = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }

        started = time.perf_counter()
        with bind_request(request_id, tenant):
            try:
                response = await call_next(request)
            except Exception as exc:
                log_json(
                    logger,
                    logging.ERROR,
                    "request_error",
                    status_code=500,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                    exception=exc.__class__.__name__,
                    error=str(exc),
                    **fields,
                )
                raise

            duration_ms = (time.perf_counter() - started) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            observe_http_request(
                method=request.method,
                route=route_label(request),
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            log_json(
                logger,
                status_log_level(response.status_code),
                "request",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                **fields,
            )
            return response
