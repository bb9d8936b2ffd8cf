"""
Tests for health, metrics, request middleware and logging helpers
"""
import json
import logging

from app.core.logging_config import (ContextualFormatter, LoggingConfig,
                                     SensitiveDataFilter)
from app.core.middleware_metrics import normalize_endpoint


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_detailed_checks_database(client):
    response = client.get("/health/detailed")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["components"]["database"]["status"] == "healthy"
    assert data["components"]["password_reset_limiter"]["tracked_emails"] == 0


def test_metrics_endpoint_exposes_http_and_crm_counters(client, auth_headers):
    client.post("/api/people/", json={"name": "Counted"}, headers=auth_headers)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert "http_requests_total" in body
    assert 'crm_operations_total{entity="person",operation="create"}' in body
    assert 'auth_events_total{event="register",outcome="success"}' in body


def test_request_id_header(client):
    generated = client.get("/health")
    echoed = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert generated.headers["x-request-id"]
    assert echoed.headers["x-request-id"] == "req-123"


def test_unknown_route_is_404(client):
    assert client.get("/api/nothing-here").status_code == 404


def test_normalize_endpoint_collapses_ids():
    path = "/api/people/3f2b8c4e-1d2a-4b6c-9e8f-0a1b2c3d4e5f/fields"
    assert normalize_endpoint(path) == "/api/people/{id}/fields"
    assert normalize_endpoint("/api/tags/top") == "/api/tags/top"
    assert normalize_endpoint("/health") == "/health"


def _record(msg, *args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_sensitive_data_filter_masks_credentials():
    mask = SensitiveDataFilter()
    record = _record("login password=hunter2 with Bearer eyJabc.def and http://x/reset-password?token=abc123")

    mask.filter(record)

    assert "hunter2" not in record.msg
    assert "eyJabc.def" not in record.msg
    assert "abc123" not in record.msg


def test_sensitive_data_filter_keeps_reset_link_shape():
    record = _record("link http://frontend.test/reset-password?token=abc123def")

    SensitiveDataFilter().filter(record)

    assert record.msg == "link http://frontend.test/reset-password?token=***"


def test_sensitive_data_filter_masks_extra_fields():
    record = _record("sending reset email")
    record.reset_token = "abc123"
    record.link = "http://frontend.test/reset-password?token=abc123"
    record.person_id = "p-1"

    SensitiveDataFilter().filter(record)

    assert record.reset_token == "***"
    assert record.link == "http://frontend.test/reset-password?token=***"
    assert record.person_id == "p-1"


def test_sensitive_data_filter_disabled():
    record = _record("password=hunter2")
    SensitiveDataFilter(enabled=False).filter(record)
    assert record.msg == "password=hunter2"


def test_contextual_formatter_includes_context_and_extra():
    LoggingConfig.set_context(request_id="abc")
    try:
        record = _record("hello %s", "world")
        record.person_id = "p-1"
        line = json.loads(ContextualFormatter().format(record))
    finally:
        LoggingConfig.clear_context()

    assert line["message"] == "hello world"
    assert line["request_id"] == "abc"
    assert line["person_id"] == "p-1"
    assert line["level"] == "INFO"


def test_set_module_level():
    LoggingConfig.set_module_level("app.services.tag_service", "DEBUG")
    try:
        assert logging.getLogger("app.services.tag_service").level == logging.DEBUG
        assert LoggingConfig.get_module_levels()["app.services.tag_service"] == "DEBUG"
    finally:
        LoggingConfig.set_module_level("app.services.tag_service", "INFO")
