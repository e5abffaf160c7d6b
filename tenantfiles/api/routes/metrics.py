"""``GET /api/metrics`` in the Prometheus text format."""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Header, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tenantfiles.core.config import get_settings

router = APIRouter()


def presented_token(authorization: str | None, metrics_token: str | None) -> str | None:
    """Token from ``Authorization: Bearer`` or else ``X-Metrics-Token``."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return metrics_token or None


@router.get("/metrics", include_in_schema=False)
async def metrics_endpoint(
    authorization: str | None = Header(default=None),
    x_metrics_token: str | None = Header(default=None, alias="X-Metrics-Token"),
) -> Response:
    settings = get_settings()
    if settings.environment == "production":
        # Without a configured token the endpoint does not exist in production.
        if not settings.metrics_token:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
        token = presented_token(authorization, x_metrics_token)
        if token is None or not hmac.compare_digest(token, settings.metrics_token):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
