"""
Tests for request correlation ids and JSON log setup.
"""

import logging

from backend.app.core.config import Settings
from backend.app.core.logging import configure_logging
from backend.app.core.observability import CorrelationIdFilter, correlation_id_var


async def test_incoming_correlation_id_is_echoed(client):
    response = await client.get("/", headers={"X-Correlation-ID": "trace-123"})

    assert response.headers["X-Correlation-ID"] == "trace-123"
    assert float(response.headers["X-Process-Time"]) >= 0


async def test_correlation_id_generated_per_request(client):
    first = await client.get("/")
    second = await client.get("/")

    assert first.headers["X-Correlation-ID"]
    assert first.headers["X-Correlation-ID"] != second.headers["X-Correlation-ID"]


async def test_service_logs_carry_correlation_id(client, client_user, request_body, caplog):
    caplog.handler.addFilter(CorrelationIdFilter())
    caplog.set_level(logging.INFO)

    response = await client.post(
        "/v1/transport-requests",
        json=request_body(),
        headers={**client_user.headers, "X-Correlation-ID": "shipment-trace"}
    )

    assert response.status_code == 201
    created = [r for r in caplog.records if r.getMessage() == "Transport request created"]
    assert len(created) == 1
    assert created[0].correlation_id == "shipment-trace"
    assert created[0].request_id == response.json()["id"]


def test_records_outside_a_request_get_placeholder():
    record = logging.LogRecord("freight", logging.INFO, __file__, 1, "idle", None, None)

    CorrelationIdFilter().filter(record)

    assert record.correlation_id == correlation_id_var.get() == "-"


def test_configure_logging_installs_single_json_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(Settings(log_level="debug"))
        configure_logging(Settings(log_level="debug"))

        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert any(isinstance(f, CorrelationIdFilter) for f in root.handlers[0].filters)
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
