"""Session scope wiring for the portal tables.

``create_portal_scope`` builds the per-session objects every table needs:
one EventBus, a LoggingService capturing diagnostics, the StoreRegistry and a
MutationPipeline per requested entity. Column visibility is restored from
``{data_dir}/{entity}_columns.json`` when a store is created and written back
whenever it changes. Tests build a fresh scope each time instead of sharing
module-level state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

import httpx

from config import settings
from core.entity_client import EntityApiClient
from portal.repositories.protocols import EntityRepository
from portal.services.column_visibility_persistence import (
    ColumnVisibilityPersistenceService,
    ColumnVisibilityState,
)
from portal.services.event_bus import Event, EventBus, PortalEvent, Subscription
from portal.services.logging_service import LoggingService
from portal.stores.entity_store import EntityStore
from portal.stores.mutations import MutationPipeline
from portal.stores.registry import StoreRegistry

__all__ = ["PortalScope", "create_portal_scope"]

log = logging.getLogger(__name__)


@dataclass
class PortalScope:
    """Objects owned by one portal session.

    Attributes
    ----------
    event_bus: Bus shared by stores, pipelines and views
    logging_service: Ring buffer of recent diagnostics
    stores: Registry with one store per entity type
    pipelines: Mutation pipeline per entity wired in this scope
    data_dir: Directory holding per-entity column settings
    """

    event_bus: EventBus
    logging_service: LoggingService
    stores: StoreRegistry
    pipelines: Dict[str, MutationPipeline] = field(default_factory=dict)
    data_dir: str = settings.DATA_DIR
    _column_sub: Optional[Subscription] = field(default=None, repr=False)
    _restoring: bool = field(default=False, repr=False)

    def store(self, entity: str) -> EntityStore:
        return self.stores.get(entity)

    def pipeline(self, entity: str) -> MutationPipeline:
        return self.pipelines[entity]

    def add_entity(self, entity: str, repository: EntityRepository, **kwargs: Any) -> MutationPipeline:
        pipeline = MutationPipeline(
            self.stores.get(entity), repository, event_bus=self.event_bus, **kwargs
        )
        self.pipelines[entity] = pipeline
        return pipeline

    # Column settings ----------------------------------------------------
    def column_settings(self, entity: str) -> ColumnVisibilityPersistenceService:
        return ColumnVisibilityPersistenceService(entity, base_dir=self.data_dir)

    def persist_column_visibility(self) -> None:
        """Restore each new store's column visibility and save it on change."""
        self.stores.on_create = self._restore_columns
        if self._column_sub is None:
            self._column_sub = self.event_bus.subscribe(
                PortalEvent.STORE_CHANGED, self._save_columns
            )

    def _restore_columns(self, store: EntityStore) -> None:
        state = self.column_settings(store.entity).load()
        if state.visible:
            self._restoring = True
            try:
                store.set_column_visibility(state.visible)
            finally:
                self._restoring = False

    def _save_columns(self, event: Event) -> None:
        payload = event.payload or {}
        if self._restoring or "column_visibility" not in payload.get("fields", ()):
            return
        entity = payload["entity"]
        store = self.stores.get(entity)
        self.column_settings(entity).save(
            ColumnVisibilityState(visible=dict(store.state.column_visibility))
        )
        log.debug("Saved column visibility for %s", entity)

    def close(self) -> None:
        """Logout / navigation away: clear all stores and stop log capture.

        Column settings stay on disk; the reset is not saved over them.
        """
        if self._column_sub is not None:
            self.event_bus.unsubscribe(self._column_sub)
            self._column_sub = None
        self.stores.reset()
        self.logging_service.detach()


def create_portal_scope(
    *,
    base_url: Optional[str] = None,
    entities: Iterable[str] = (),
    http_client: Optional[httpx.AsyncClient] = None,
    capture_loggers: Iterable[str] = ("portal", "core"),
    data_dir: Optional[str] = None,
) -> PortalScope:
    bus = EventBus()
    logging_service = LoggingService(event_bus=bus)
    logging_service.attach(*capture_loggers)
    scope = PortalScope(
        event_bus=bus,
        logging_service=logging_service,
        stores=StoreRegistry(event_bus=bus),
        data_dir=data_dir or settings.DATA_DIR,
    )
    scope.persist_column_visibility()
    for entity in entities:
        client = EntityApiClient(
            entity, base_url=base_url or settings.API_BASE_URL, client=http_client
        )
        scope.add_entity(entity, client)
    return scope
