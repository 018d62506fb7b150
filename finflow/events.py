import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

from finflow.aggregation import DANGER, WARNING, BudgetStatus

__all__ = [
    'Event', 'EventBus',
    'TRANSACTION_ADDED', 'TRANSACTION_DELETED', 'BUDGET_ADDED', 'BUDGET_DELETED',
    'BUDGET_ALERT', 'STORAGE_ERROR', 'DATA_IMPORTED',
    'notify_handler', 'budget_alert_handler', 'register_default_handlers',
]

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        logger.debug("Publishing %s to %d handler(s)", name, len(self._subscribers[name]))
        return [handler(event, payload) for handler in self._subscribers[name]]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


TRANSACTION_ADDED = "TRANSACTION_ADDED"
TRANSACTION_DELETED = "TRANSACTION_DELETED"
BUDGET_ADDED = "BUDGET_ADDED"
BUDGET_DELETED = "BUDGET_DELETED"
BUDGET_ALERT = "BUDGET_ALERT"
STORAGE_ERROR = "STORAGE_ERROR"
DATA_IMPORTED = "DATA_IMPORTED"

# events whose payload carries a user-facing message
NOTIFYING_EVENTS = (
    TRANSACTION_ADDED, TRANSACTION_DELETED, BUDGET_ADDED, BUDGET_DELETED,
    STORAGE_ERROR, DATA_IMPORTED,
)


def notify_handler(event: Event, payload: dict) -> dict:
    message = payload.get("message")
    if not message:
        return {}
    level = "error" if event.name == STORAGE_ERROR else "info"
    return {"toast": message, "level": level}


def budget_alert_handler(event: Event, payload: dict) -> dict:
    status: BudgetStatus = payload.get("status")
    if status is None or status.status not in (WARNING, DANGER):
        return {}
    category = status.budget.category
    if status.status == DANGER:
        text = f"Budget exceeded for {category}: {status.spent:,.2f} / {status.budget.amount:,.2f}"
    else:
        text = f"Budget for {category} is {status.percentage:.0f}% used"
    return {"alert": text, "category": category, "status": status.status}


def register_default_handlers(bus: EventBus, sink: Callable[[dict], None]) -> EventBus:
    """Wire the notification handlers into `bus`, forwarding results to `sink`."""
    def forward(handler: Handler) -> Handler:
        def _forward(event: Event, payload: dict) -> dict:
            result = handler(event, payload)
            if result:
                sink(result)
            return result
        return _forward

    for name in NOTIFYING_EVENTS:
        bus.subscribe(name, forward(notify_handler))
    bus.subscribe(BUDGET_ALERT, forward(budget_alert_handler))
    return bus
