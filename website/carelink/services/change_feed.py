"""
In-process change feed for dashboard refreshes.

Views subscribe to a table and receive insert/update events after the write
has committed. Subscribers only refresh their own read-only projections.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    record_id: int


_subscribers = defaultdict(list)


def subscribe(table, on_change):
    """Register a callback for changes on a table. Returns an unsubscribe function."""
    _subscribers[table].append(on_change)

    def unsubscribe():
        if on_change in _subscribers[table]:
            _subscribers[table].remove(on_change)

    return unsubscribe


def publish(table, event, record_id):
    change = ChangeEvent(table=table, event=event, record_id=record_id)
    for callback in list(_subscribers[table]):
        try:
            callback(change)
        except Exception as e:
            logger.error(f"Change feed subscriber failed for {table} {event} {record_id}: {e}")


def clear():
    _subscribers.clear()
