"""Per-request values carried into log lines through context variables."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_tenant: ContextVar[str | None] = ContextVar("tenant", default=None)


def new_request_id() -> str:
    return uuid4().hex


def get_request_id() -> str | None:
    return _request_id.get()


def get_tenant() -> str | None:
    """Tenant named by the request header, before any normalisation."""
    return _tenant.get()


@contextmanager
def bind_request(request_id: str | None, tenant: str | None = None) -> Iterator[None]:
    """Expose ``request_id`` and ``tenant`` to code running inside the block."""
    request_token = _request_id.set(request_id)
    tenant_token = _tenant.set(tenant)
    try:
        yield
    finally:
        _tenant.reset(tenant_token)
        _request_id.reset(request_token)
