"""Optimistic write pipeline between an entity store and its API client.

Every write goes through the same steps:

 1. validate the change locally (optional per-field schemas)
 2. apply it to the store right away (``PENDING``)
 3. send it to the persistence layer
 4. on failure restore the affected rows (``ROLLED_BACK``) and re-raise
 5. on success reconcile with what the server returned (``COMMITTED``)

Bulk deletes reconcile by refetching the whole collection. Fetches are not
cancellable: when two overlap, whichever completes last wins.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from core.entity_client import NetworkError
from portal.datasheet.validation import ValidationFailure, ValidationSchema, validate
from portal.repositories.protocols import EntityRepository
from portal.services.event_bus import EventBus, PortalEvent
from portal.stores.entity_store import EntityStore

__all__ = [
    "MutationState",
    "Mutation",
    "MutationValidationError",
    "MutationPipeline",
]

log = logging.getLogger(__name__)

Row = Mapping[str, Any]


class MutationState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class MutationValidationError(ValueError):
    """A write was rejected locally before anything was applied or sent."""

    def __init__(self, field_name: str, messages: List[str]):
        super().__init__(f"{field_name}: {', '.join(messages)}")
        self.field_name = field_name
        self.messages = messages


@dataclass
class Mutation:
    id: int
    kind: str  # 'create' | 'update' | 'delete'
    row_ids: Tuple[Any, ...]
    state: MutationState = MutationState.IDLE
    error: Optional[str] = None
    # (index, row) pairs needed to undo the optimistic change
    snapshot: List[Tuple[int, Row]] = field(default_factory=list)


class MutationPipeline:
    def __init__(
        self,
        store: EntityStore,
        repository: EntityRepository,
        *,
        validators: Mapping[str, ValidationSchema] | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.store = store
        self.repository = repository
        self.validators = dict(validators or {})
        self._bus = event_bus
        self._ids = itertools.count(1)
        self.history: List[Mutation] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def refresh(self) -> List[Row]:
        """Load the collection into the store (no cancellation, last completion wins)."""
        self.store.set_loading(True)
        self.store.set_error(None)
        try:
            rows = await self.repository.fetch_all()
        except NetworkError as e:
            self.store.set_error(e.message)
            self.store.set_loading(False)
            self._publish(PortalEvent.ERROR_OCCURRED, {"entity": self.store.entity, "error": e.message})
            raise
        self.store.set_data(rows)
        self.store.set_loading(False)
        self._publish(PortalEvent.DATA_REFRESHED, {"entity": self.store.entity, "count": len(rows)})
        return list(self.store.state.data)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def update(self, row_id: Any, partial: Mapping[str, Any]) -> Row:
        self._validate(partial)
        current = self.store.find_row(row_id)
        if current is None:
            raise KeyError(row_id)
        m = self._begin("update", (row_id,))
        m.snapshot = self._snapshot([row_id])
        self.store.upsert_row({**current, **partial})
        self._transition(m, MutationState.PENDING)
        try:
            saved = await self.repository.update(row_id, partial)
        except Exception as e:
            self._rollback(m, e)
            raise
        self.store.upsert_row(saved if saved else {**current, **partial})
        self._transition(m, MutationState.COMMITTED)
        return self.store.find_row(row_id)

    async def create(self, data: Mapping[str, Any]) -> Row:
        """Create a row; the store only gains it once the server assigned an id."""
        self._validate(data)
        m = self._begin("create", ())
        self._transition(m, MutationState.PENDING)
        try:
            saved = await self.repository.create(data)
        except Exception as e:
            self._rollback(m, e)
            raise
        m.row_ids = (self.store.row_id(saved),)
        self.store.upsert_row(saved)
        self._transition(m, MutationState.COMMITTED)
        return saved

    async def delete(self, row_id: Any) -> None:
        await self.bulk_delete([row_id])

    async def bulk_delete(self, ids: Iterable[Any]) -> None:
        ids = tuple(ids)
        if not ids:
            return
        m = self._begin("delete", ids)
        m.snapshot = self._snapshot(ids)
        self.store.stage_delete(ids)
        self.store.remove_rows(ids)
        self._transition(m, MutationState.PENDING)
        try:
            if len(ids) == 1:
                await self.repository.delete(ids[0])
            else:
                await self.repository.bulk_delete(ids)
        except Exception as e:
            self._rollback(m, e)
            raise
        finally:
            self.store.unstage_delete(ids)
        self.store.set_selected_rows([i for i in self.store.state.selected_rows if i not in ids])
        self._transition(m, MutationState.COMMITTED)
        await self.refresh()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _validate(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            schema = self.validators.get(key)
            outcome = validate(schema, value)
            if isinstance(outcome, ValidationFailure):
                log.warning("Rejected %s.%s: %s", self.store.entity, key, outcome.summary())
                raise MutationValidationError(key, outcome.messages)

    def _begin(self, kind: str, row_ids: Tuple[Any, ...]) -> Mutation:
        m = Mutation(id=next(self._ids), kind=kind, row_ids=row_ids)
        self.history.append(m)
        return m

    def _snapshot(self, ids: Iterable[Any]) -> List[Tuple[int, Row]]:
        wanted = set(ids)
        return [
            (i, row) for i, row in enumerate(self.store.state.data) if self.store.row_id(row) in wanted
        ]

    def _rollback(self, m: Mutation, error: Exception) -> None:
        data = list(self.store.state.data)
        for index, row in m.snapshot:
            rid = self.store.row_id(row)
            existing = next((i for i, r in enumerate(data) if self.store.row_id(r) == rid), None)
            if existing is not None:
                data[existing] = row
            else:
                data.insert(min(index, len(data)), row)
        self.store.set_data(data)
        m.error = getattr(error, "message", None) or str(error)
        log.warning(
            "%s of %s %s failed, rolled back: %s", m.kind, self.store.entity, list(m.row_ids), m.error
        )
        self._transition(m, MutationState.ROLLED_BACK)

    def _transition(self, m: Mutation, state: MutationState) -> None:
        m.state = state
        self._publish(
            PortalEvent.MUTATION_STATE_CHANGED,
            {"entity": self.store.entity, "mutation": m.id, "kind": m.kind, "state": state.value},
        )

    def _publish(self, name: PortalEvent, payload: Any) -> None:
        if self._bus is not None:
            self._bus.publish(name, payload)
