# onetrack/core/realtime.py
"""
In-process change notifications.

Services call `feed.notify(...)` after a committed mutation. Listeners
(dashboards, the realtime websocket, session contexts) register with
`feed.on_change(table, callback)` and re-query on every event; there is
no delta merging.
"""
import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ChangeKind = Literal["INSERT", "UPDATE", "DELETE"]


class ChangeEvent(BaseModel):
    table: str
    event: ChangeKind
    row_id: str | None = None
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by `ChangeFeed.on_change`."""

    def __init__(self, feed: "ChangeFeed", table: str, callback: ChangeCallback):
        self._feed = feed
        self.table = table
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        # Safe to call more than once
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    """
    Table-keyed listener registry.

    Thread-safe: sync endpoints run in the threadpool, so notify() can be
    called from any worker thread.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Subscription]] = {}

    def on_change(self, table: str, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, table, callback)
        with self._lock:
            self._listeners.setdefault(table, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            listeners = self._listeners.get(subscription.table, [])
            if subscription in listeners:
                listeners.remove(subscription)

    def listener_count(self, table: str) -> int:
        with self._lock:
            return len(self._listeners.get(table, []))

    def notify(
        self,
        table: str,
        event: ChangeKind,
        row_id: uuid.UUID | str | None = None,
    ) -> None:
        """
        Deliver a change to every listener of `table`.

        A failing listener is logged and does not stop the others.
        """
        change = ChangeEvent(
            table=table,
            event=event,
            row_id=str(row_id) if row_id is not None else None,
        )
        with self._lock:
            listeners = list(self._listeners.get(table, []))
        for subscription in listeners:
            try:
                subscription.callback(change)
            except Exception:
                logger.exception("Change listener for %s failed", table)


# Process-wide feed used by services and the realtime router
feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """FastAPI dependency returning the process-wide change feed."""
    return feed
