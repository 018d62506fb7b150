from datetime import date, datetime

from finflow.aggregation import budget_status_for
from finflow.domain import Budget, Transaction
from finflow.events import (
    BUDGET_ALERT,
    DATA_IMPORTED,
    STORAGE_ERROR,
    TRANSACTION_ADDED,
    Event,
    EventBus,
    budget_alert_handler,
    notify_handler,
    register_default_handlers,
)

TODAY = date(2025, 3, 15)


def make_status(spent, limit):
    trans = (Transaction(1, "expense", date(2025, 3, 1), spent, "Food"),)
    return budget_status_for(Budget(1, "Food", limit), trans, TODAY)


def make_event(name, payload):
    return Event(name=name, ts=datetime.now().isoformat(), payload=payload)


def test_event_bus_subscribe_and_publish():
    bus = EventBus()
    seen = []

    def handler(event: Event, payload: dict) -> dict:
        seen.append(payload)
        return {"processed": True}

    bus.subscribe(TRANSACTION_ADDED, handler)
    results = bus.publish(TRANSACTION_ADDED, {"amount": 50})

    assert results == [{"processed": True}]
    assert seen == [{"amount": 50}]
    assert bus.publish(DATA_IMPORTED, {}) == []


def test_event_bus_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(event, payload):
        calls.append(payload)
        return {}

    bus.subscribe(TRANSACTION_ADDED, handler)
    bus.publish(TRANSACTION_ADDED, {"n": 1})
    bus.unsubscribe(TRANSACTION_ADDED, handler)
    bus.unsubscribe(STORAGE_ERROR, handler)
    bus.publish(TRANSACTION_ADDED, {"n": 2})
    assert calls == [{"n": 1}]


def test_notify_handler_levels():
    info = notify_handler(make_event(TRANSACTION_ADDED, {}), {"message": "Transaction added successfully!"})
    error = notify_handler(make_event(STORAGE_ERROR, {}), {"message": "Error saving data. Storage may be full."})
    assert info == {"toast": "Transaction added successfully!", "level": "info"}
    assert error["level"] == "error"
    assert notify_handler(make_event(TRANSACTION_ADDED, {}), {}) == {}


def test_budget_alert_handler_is_pure_and_tiered():
    payload = {"status": make_status(250, 200)}
    first = budget_alert_handler(make_event(BUDGET_ALERT, payload), payload)
    second = budget_alert_handler(make_event(BUDGET_ALERT, payload), payload)
    assert first == second
    assert first["status"] == "danger"
    assert "Budget exceeded for Food" in first["alert"]

    warn = {"status": make_status(90, 100)}
    assert "90% used" in budget_alert_handler(make_event(BUDGET_ALERT, warn), warn)["alert"]

    fine = {"status": make_status(10, 100)}
    assert budget_alert_handler(make_event(BUDGET_ALERT, fine), fine) == {}


def test_register_default_handlers_forwards_to_sink():
    sink = []
    bus = register_default_handlers(EventBus(), sink.append)
    bus.publish(STORAGE_ERROR, {"message": "disk full"})
    bus.publish(BUDGET_ALERT, {"status": make_status(10, 100)})
    bus.publish(BUDGET_ALERT, {"status": make_status(500, 100)})
    assert sink[0] == {"toast": "disk full", "level": "error"}
    assert len(sink) == 2
    assert sink[1]["status"] == "danger"
