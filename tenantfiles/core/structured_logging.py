"""JSON log lines for services and middleware.

Each call produces one line whose ``event`` names what happened; the
request ID and tenant bound by the request middleware are added when present.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from tenantfiles.core.request_context import get_request_id, get_tenant


def _context_fields() -> dict[str, str]:
    fields = {}
    request_id = get_request_id()
    if request_id:
        fields["request_id"] = request_id
    tenant = get_tenant()
    if tenant:
        fields["tenant"] = tenant
    return fields


def log_json(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with ``fields``; explicit fields win over context values."""
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"timestamp": datetime.now(UTC).isoformat(), "event": event}
    payload.update(_context_fields())
    payload.update(fields)
    logger.log(level, json.dumps(payload, default=str))
