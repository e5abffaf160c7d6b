"""Unit tests for request correlation helpers and JSON log lines."""

import json
import logging

from starlette.requests import Request

from tenantfiles.api.middleware import incoming_request_id, route_label, status_log_level
from tenantfiles.core.request_context import bind_request, get_request_id, get_tenant
from tenantfiles.core.structured_logging import log_json


def make_request(headers: dict[str, str] | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/api/accounts", "headers": raw})


def test_incoming_request_id_prefers_request_id_header():
    request = make_request({"X-Request-ID": " abc ", "X-Correlation-ID": "xyz"})

    assert incoming_request_id(request) == "abc"


def test_incoming_request_id_falls_back_to_correlation_id():
    assert incoming_request_id(make_request({"X-Correlation-ID": "xyz"})) == "xyz"


def test_incoming_request_id_rejects_oversized_values():
    assert incoming_request_id(make_request({"X-Request-ID": "x" * 129})) is None
    assert incoming_request_id(make_request()) is None


def test_route_label_for_unmatched_request():
    assert route_label(make_request()) == "unmatched"


def test_status_log_level():
    assert status_log_level(200) == logging.INFO
    assert status_log_level(404) == logging.WARNING
    assert status_log_level(502) == logging.ERROR


def test_bind_request_restores_previous_values():
    with bind_request("req-1", "acme"):
        assert get_request_id() == "req-1"
        assert get_tenant() == "acme"

    assert get_request_id() is None
    assert get_tenant() is None


def test_log_json_includes_context(caplog):
    logger = logging.getLogger("tenantfiles.test")

    with caplog.at_level(logging.INFO, logger="tenantfiles.test"):
        with bind_request("req-1", "acme"):
            log_json(logger, logging.INFO, "file_uploaded", size=5)

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "file_uploaded"
    assert payload["request_id"] == "req-1"
    assert payload["tenant"] == "acme"
    assert payload["size"] == 5


def test_log_json_explicit_tenant_wins(caplog):
    logger = logging.getLogger("tenantfiles.test")

    with caplog.at_level(logging.INFO, logger="tenantfiles.test"):
        with bind_request("req-1", "acme"):
            log_json(logger, logging.INFO, "copied", tenant="globex")

    assert json.loads(caplog.records[-1].getMessage())["tenant"] == "globex"
