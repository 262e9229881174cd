"""Synchronous publish/subscribe bus for store and table notifications.

Stores publish on every state change; table views and view models subscribe
and refresh. Dispatch is synchronous on the caller's thread:

 - handlers run in subscription order
 - one failing handler does not break the publish cycle (errors are kept)
 - one-shot (``once``) subscriptions are removed after their first success
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from time import perf_counter
from typing import Any, Dict, List, Protocol

__all__ = [
    "PortalEvent",
    "Event",
    "EventBus",
    "EventHandler",
    "Subscription",
]

log = logging.getLogger(__name__)


class PortalEvent(str, Enum):
    STORE_CHANGED = "store_changed"
    SELECTION_CHANGED = "selection_changed"
    MUTATION_STATE_CHANGED = "mutation_state_changed"
    DATA_REFRESHED = "data_refreshed"
    ERROR_OCCURRED = "error_occurred"
    LOG_RECORD_ADDED = "log_record_added"


@dataclass
class Event:
    name: str  # PortalEvent value or custom string
    payload: Any
    timestamp: float


class EventHandler(Protocol):
    def __call__(self, event: Event) -> None: ...  # pragma: no cover - structural


@dataclass
class Subscription:
    event: str
    handler: EventHandler
    once: bool
    active: bool = True

    def cancel(self) -> None:
        self.active = False


def _key(name: str | PortalEvent) -> str:
    return name.value if isinstance(name, PortalEvent) else name


class EventBus:
    """Event dispatcher.

    Subscribers are snapshotted under the lock and invoked without it, so a
    handler may subscribe or unsubscribe while being dispatched.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._subs: Dict[str, List[Subscription]] = {}
        self._errors: List[tuple[Event, BaseException]] = []

    def subscribe(
        self, name: str | PortalEvent, handler: EventHandler, *, once: bool = False
    ) -> Subscription:
        sub = Subscription(event=_key(name), handler=handler, once=once)
        with self._lock:
            self._subs.setdefault(sub.event, []).append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            bucket = self._subs.get(sub.event)
            if bucket:
                self._subs[sub.event] = [s for s in bucket if s is not sub]
                if not self._subs[sub.event]:
                    self._subs.pop(sub.event, None)
        sub.active = False

    def clear(self) -> None:
        with self._lock:
            self._subs.clear()
            self._errors.clear()

    def publish(self, name: str | PortalEvent, payload: Any = None) -> Event:
        key = _key(name)
        evt = Event(name=key, payload=payload, timestamp=perf_counter())
        with self._lock:
            subs = list(self._subs.get(key, ()))
        finished: List[Subscription] = []
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.handler(evt)
            except Exception as exc:  # noqa: BLE001 - isolate handler failures
                # Not logged through the root handler: a failing log subscriber
                # would otherwise recurse back into publish().
                self._errors.append((evt, exc))
            else:
                if sub.once:
                    finished.append(sub)
        for sub in finished:
            self.unsubscribe(sub)
        return evt

    def subscriber_count(self, name: str | PortalEvent) -> int:
        with self._lock:
            return len(self._subs.get(_key(name), ()))

    @property
    def errors(self) -> list[tuple[Event, BaseException]]:
        with self._lock:
            return list(self._errors)
