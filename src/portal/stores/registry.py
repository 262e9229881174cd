"""One EntityStore per entity type, owned by an explicit scope.

A registry is created by whoever owns the session (the application scope or a
test) and handed to the views that need stores. ``reset()`` clears every
store, e.g. on logout or when navigating away from the portal.
"""

from __future__ import annotations

from threading import RLock
from typing import Callable, Dict, Iterable, Optional

from portal.models import EntitySpec, entity_spec
from portal.services.event_bus import EventBus
from portal.stores.entity_store import EntityStore

__all__ = ["StoreRegistry"]


class StoreRegistry:
    def __init__(
        self,
        *,
        event_bus: EventBus | None = None,
        on_create: Optional[Callable[[EntityStore], None]] = None,
    ) -> None:
        self._lock = RLock()
        self._bus = event_bus
        self._stores: Dict[str, EntityStore] = {}
        # Called once with each newly created store (e.g. to restore saved settings)
        self.on_create = on_create

    def get(self, entity: str, *, spec: Optional[EntitySpec] = None) -> EntityStore:
        """Store for ``entity``, created on first use.

        Raises UnsupportedEntityError for unknown entity types unless an
        explicit ``spec`` is supplied.
        """
        with self._lock:
            store = self._stores.get(entity)
            if store is None:
                store = EntityStore(spec or entity_spec(entity), event_bus=self._bus)
                self._stores[entity] = store
                if self.on_create is not None:
                    self.on_create(store)
            return store

    def entities(self) -> Iterable[str]:
        with self._lock:
            return list(self._stores)

    def reset(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
        for store in stores:
            store.reset()
