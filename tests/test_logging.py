"""
tests.test_logging

Log event enrichment.
"""

from __future__ import annotations

import logging

import structlog

from request_orchestrator.observability.logging import shared_processors


def test_events_carry_service_and_bound_context() -> None:
    structlog.contextvars.bind_contextvars(tracking_key="LOGIN", request_id="r-1")
    try:
        event = {"event": "request.dispatched"}
        for processor in shared_processors("store"):
            event = processor(logging.getLogger("request_orchestrator.tests"), "info", event)
    finally:
        structlog.contextvars.clear_contextvars()

    assert event["service"] == "store"
    assert event["tracking_key"] == "LOGIN"
    assert event["request_id"] == "r-1"
    assert event["level"] == "info"
    assert event["logger"] == "request_orchestrator.tests"
    assert "timestamp" in event
