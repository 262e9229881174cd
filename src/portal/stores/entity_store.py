"""Per-entity table state: data, selection, staged deletes, search, sort, filters.

One :class:`EntityStore` exists per entity type per scope (see
:class:`portal.stores.registry.StoreRegistry`). All setters are synchronous
and last write wins; each change is announced as
``PortalEvent.STORE_CHANGED`` with the entity name and the changed fields.

Selection and staged deletes hold row ids rather than row objects, so they
survive a refetch as long as the ids are stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from portal.models import EntitySpec
from portal.services.event_bus import EventBus, PortalEvent
from portal.services.filter_evaluator import FilterCondition, apply_filters
from portal.services.multi_column_sort import SortRule, sort_rows

__all__ = ["EntityStoreState", "EntityStore"]


Row = Mapping[str, Any]


@dataclass(frozen=True)
class EntityStoreState:
    data: tuple = ()
    selected_rows: tuple = ()
    search_query: str = ""
    sort_rules: tuple = ()
    filter_conditions: tuple = ()
    sort_case_sensitive: bool = False
    sort_nulls_first: bool = False
    filter_case_sensitive: bool = False
    column_visibility: Dict[str, bool] = field(default_factory=dict)
    pending_delete_ids: frozenset = frozenset()
    is_loading: bool = False
    error: Optional[str] = None


class EntityStore:
    def __init__(self, spec: EntitySpec, *, event_bus: EventBus | None = None):
        self.spec = spec
        self._bus = event_bus
        self._state = EntityStoreState()

    @property
    def state(self) -> EntityStoreState:
        return self._state

    @property
    def entity(self) -> str:
        return self.spec.name

    def row_id(self, row: Row) -> Any:
        return row.get(self.spec.id_field)

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------
    def _set(self, **changes: Any) -> None:
        changed = [k for k, v in changes.items() if getattr(self._state, k) != v]
        if not changed:
            return
        self._state = replace(self._state, **changes)
        if self._bus is not None:
            self._bus.publish(
                PortalEvent.STORE_CHANGED, {"entity": self.entity, "fields": tuple(changed)}
            )
            if "selected_rows" in changed:
                self._bus.publish(
                    PortalEvent.SELECTION_CHANGED,
                    {"entity": self.entity, "selected": self._state.selected_rows},
                )

    def reset(self) -> None:
        self._set(**{f.name: getattr(EntityStoreState(), f.name) for f in fields(EntityStoreState)})

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------
    def set_data(self, rows: Iterable[Row]) -> None:
        self._set(data=tuple(rows))

    def set_loading(self, loading: bool) -> None:
        self._set(is_loading=loading)

    def set_error(self, message: Optional[str]) -> None:
        self._set(error=message)

    def find_row(self, row_id: Any) -> Optional[Row]:
        for row in self._state.data:
            if self.row_id(row) == row_id:
                return row
        return None

    def upsert_row(self, row: Row) -> None:
        """Replace the row with the same id, or append it when new."""
        rid = self.row_id(row)
        data = list(self._state.data)
        for i, existing in enumerate(data):
            if self.row_id(existing) == rid:
                data[i] = row
                break
        else:
            data.append(row)
        self.set_data(data)

    def remove_rows(self, ids: Iterable[Any]) -> None:
        drop = set(ids)
        self.set_data(r for r in self._state.data if self.row_id(r) not in drop)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def set_selected_rows(self, ids: Sequence[Any]) -> None:
        self._set(selected_rows=tuple(ids))

    def clear_selection(self) -> None:
        self._set(selected_rows=())

    def toggle_row(self, row_id: Any) -> None:
        selected = list(self._state.selected_rows)
        if row_id in selected:
            selected.remove(row_id)
        else:
            selected.append(row_id)
        self.set_selected_rows(selected)

    def selected_data(self) -> List[Row]:
        chosen = set(self._state.selected_rows)
        return [r for r in self._state.data if self.row_id(r) in chosen]

    # ------------------------------------------------------------------
    # Staged deletes
    # ------------------------------------------------------------------
    def stage_delete(self, ids: Iterable[Any]) -> None:
        self._set(pending_delete_ids=self._state.pending_delete_ids | frozenset(ids))

    def unstage_delete(self, ids: Iterable[Any]) -> None:
        self._set(pending_delete_ids=self._state.pending_delete_ids - frozenset(ids))

    def clear_pending_deletes(self) -> None:
        self._set(pending_delete_ids=frozenset())

    # ------------------------------------------------------------------
    # Search / sort / filter settings
    # ------------------------------------------------------------------
    def set_search_query(self, query: str) -> None:
        self._set(search_query=query)

    def set_sort_rules(self, rules: Sequence[SortRule]) -> None:
        self._set(sort_rules=tuple(rules))

    def set_sort_case_sensitive(self, flag: bool) -> None:
        self._set(sort_case_sensitive=flag)

    def set_sort_nulls_first(self, flag: bool) -> None:
        self._set(sort_nulls_first=flag)

    def set_filter_conditions(self, conditions: Sequence[FilterCondition]) -> None:
        self._set(filter_conditions=tuple(conditions))

    def set_filter_case_sensitive(self, flag: bool) -> None:
        self._set(filter_case_sensitive=flag)

    def set_column_visibility(self, visibility: Mapping[str, bool]) -> None:
        self._set(column_visibility=dict(visibility))

    def set_column_visible(self, key: str, flag: bool) -> None:
        self.set_column_visibility({**self._state.column_visibility, key: flag})

    def is_column_visible(self, key: str) -> bool:
        return self._state.column_visibility.get(key, True)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    def matches_search(self, row: Row) -> bool:
        query = self._state.search_query.strip().lower()
        if not query:
            return True
        if self.spec.searchable_fields:
            values = [row.get(f) for f in self.spec.searchable_fields]
        else:
            values = [v for k, v in row.items() if k != self.spec.id_field]
        return any(v is not None and query in str(v).lower() for v in values)

    def get_filtered_data(self, data: Iterable[Row]) -> List[Row]:
        st = self._state
        rows = [r for r in data if self.matches_search(r)]
        if st.filter_conditions:
            rows = apply_filters(rows, st.filter_conditions, st.filter_case_sensitive)
        return rows

    def get_sorted_data(self, data: Iterable[Row]) -> List[Row]:
        st = self._state
        return sort_rows(
            data,
            st.sort_rules,
            case_sensitive=st.sort_case_sensitive,
            nulls_first=st.sort_nulls_first,
        )

    def get_visible_rows(self) -> List[Row]:
        pending = self._state.pending_delete_ids
        live = [r for r in self._state.data if self.row_id(r) not in pending]
        return self.get_sorted_data(self.get_filtered_data(live))
