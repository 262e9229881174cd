"""ViewModel behind an entity data table.

Combines an :class:`EntityStore` (what rows are shown, in which order) with
the table's column descriptors (which columns are shown, how cells behave)
and the mutation pipeline (how an edited row is saved).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from portal.datasheet.cell_dispatch import CellDispatcher
from portal.datasheet.columns import ColumnDescriptor
from portal.services.event_bus import Event, EventBus, PortalEvent, Subscription
from portal.stores.entity_store import EntityStore
from portal.stores.mutations import MutationPipeline

__all__ = ["EntityTableViewModel", "TableSummary", "changed_fields"]

Row = Mapping[str, Any]


@dataclass
class TableSummary:
    total: int = 0
    shown: int = 0
    selected: int = 0

    def as_text(self) -> str:
        if self.total == 0:
            return "No records"
        text = f"{self.shown} of {self.total} records"
        if self.selected:
            text += f" | {self.selected} selected"
        return text


def changed_fields(before: Row, after: Row) -> Dict[str, Any]:
    return {k: v for k, v in after.items() if before.get(k) != v}


class EntityTableViewModel:
    def __init__(
        self,
        store: EntityStore,
        columns: Sequence[ColumnDescriptor],
        *,
        pipeline: Optional[MutationPipeline] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.dispatcher = CellDispatcher(columns, id_field=store.spec.id_field)
        self.summary = TableSummary()
        self._dirty: Dict[Any, Row] = {}
        self._sub: Optional[Subscription] = None
        if event_bus is not None:
            self._sub = event_bus.subscribe(PortalEvent.STORE_CHANGED, self._on_store_changed)
        self.refresh_rows()

    # Rows ---------------------------------------------------------------
    def refresh_rows(self) -> List[Row]:
        # Unsaved edits stay on screen across store refreshes
        rows = [self._dirty.get(self.store.row_id(r), r) for r in self.store.get_visible_rows()]
        self.dispatcher.set_rows(rows)
        self.summary = TableSummary(
            total=len(self.store.state.data),
            shown=len(rows),
            selected=len(self.store.state.selected_rows),
        )
        return rows

    def rows(self) -> List[Row]:
        return list(self.dispatcher.rows)

    def visible_columns(self) -> List[ColumnDescriptor]:
        return [c for c in self.dispatcher.columns if self.store.is_column_visible(c.id)]

    def _on_store_changed(self, event: Event) -> None:
        if event.payload and event.payload.get("entity") == self.store.entity:
            self.refresh_rows()

    # Editing ------------------------------------------------------------
    def paste(self, row_index: int, column_id: str, value: Any) -> bool:
        before = self.dispatcher.rows[row_index]
        if not self.dispatcher.paste(row_index, column_id, value):
            return False
        self._track(before, self.dispatcher.rows[row_index])
        return True

    def delete(self, row_index: int, column_id: str) -> bool:
        before = self.dispatcher.rows[row_index]
        if not self.dispatcher.delete(row_index, column_id):
            return False
        self._track(before, self.dispatcher.rows[row_index])
        return True

    def _track(self, before: Row, after: Row) -> None:
        rid = self.store.row_id(after)
        original = self.store.find_row(rid) or before
        if changed_fields(original, after):
            self._dirty[rid] = after
        else:
            self._dirty.pop(rid, None)

    @property
    def dirty_ids(self) -> List[Any]:
        return list(self._dirty)

    async def save(self) -> int:
        """Send every edited row through the mutation pipeline; returns rows saved.

        A failing row keeps its edit queued and re-raises; rows saved before it
        stay committed.
        """
        if self.pipeline is None:
            raise RuntimeError("table has no mutation pipeline")
        saved = 0
        for rid in list(self._dirty):
            after = self._dirty[rid]
            original = self.store.find_row(rid) or {}
            await self.pipeline.update(rid, changed_fields(original, after))
            self._dirty.pop(rid, None)
            saved += 1
        return saved

    def discard(self) -> None:
        self._dirty.clear()
        self.refresh_rows()

    def close(self, event_bus: Optional[EventBus] = None) -> None:
        if self._sub is not None and event_bus is not None:
            event_bus.unsubscribe(self._sub)
        self._sub = None
