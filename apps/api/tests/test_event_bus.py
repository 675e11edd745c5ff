from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from graficontrol import events
from graficontrol.context import reset_correlation_id, set_correlation_id
from graficontrol.core.events import InternalEvent, event_bus


@pytest.fixture(autouse=True)
def clear_stubs() -> Generator[None, None, None]:
    events.published_events.clear()
    yield
    events.published_events.clear()


def test_envelope_reaches_subscribers_with_correlation_id() -> None:
    received: list[InternalEvent] = []
    event_bus.subscribe("orders.order.completed", received.append)
    token = set_correlation_id("bus-corr-1")
    try:
        events.publish({"event_type": "orders.order.completed", "order_id": "order-1", "correlation_id": None})
    finally:
        reset_correlation_id(token)
        event_bus.unsubscribe("orders.order.completed", received.append)

    [event] = received
    assert event.payload["order_id"] == "order-1"
    assert event.payload["correlation_id"] == "bus-corr-1"
    assert "occurred_at" in event.payload

    events.publish({"event_type": "orders.order.completed", "order_id": "order-2"})
    assert len(received) == 1
    assert [item["order_id"] for item in events.events_of_type("orders.order.completed")] == ["order-1", "order-2"]


def test_failing_subscriber_does_not_break_publishing(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="graficontrol.events")
    received: list[InternalEvent] = []

    def explode(event: InternalEvent) -> None:
        raise RuntimeError("mailer down")

    event_bus.subscribe("subscription.trial_notice", explode)
    event_bus.subscribe("subscription.trial_notice", received.append)
    try:
        events.publish({"event_type": "subscription.trial_notice", "company_id": "company-1"})
    finally:
        event_bus.unsubscribe("subscription.trial_notice", explode)
        event_bus.unsubscribe("subscription.trial_notice", received.append)

    assert len(received) == 1
    assert any(record.getMessage() == "event_handler_failed" for record in caplog.records)
