"""Integration tests for the health and Prometheus metrics endpoints."""

import pytest
from httpx import AsyncClient

from tenantfiles.core.config import get_settings


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_metrics_endpoint_returns_prometheus_metrics(client: AsyncClient):
    # The request below records the first HTTP samples.
    health = await client.get("/api/health")
    assert health.status_code == 200

    response = await client.get("/api/metrics")
    assert response.status_code == 200
    body = response.text

    assert "tenantfiles_http_requests_total" in body
    assert "tenantfiles_http_request_duration_seconds" in body


@pytest.mark.asyncio
async def test_storage_operations_are_counted(client: AsyncClient):
    await client.post(
        "/api/contracts/file",
        data={"data": '{"title": "Lease"}'},
        files={"file": ("lease.txt", b"Hello", "text/plain")},
        headers={"X-Tenant-ID": "acme"},
    )

    response = await client.get("/api/metrics")

    assert 'tenantfiles_storage_operations_total{backend="local",operation="upload",outcome="success"}' in response.text


@pytest.mark.asyncio
async def test_metrics_require_token_in_production(client: AsyncClient, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "metrics_token", "s3cret")

    missing = await client.get("/api/metrics")
    assert missing.status_code == 403

    allowed = await client.get("/api/metrics", headers={"Authorization": "Bearer s3cret"})
    assert allowed.status_code == 200
