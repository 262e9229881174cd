"""Resolve (row, column) pairs into renderable, editable cells.

:class:`CellDispatcher` owns the column list of one table and the current
rows. It answers the questions the rendering layer asks about a cell
(disabled? empty? which class name?), renders it, and routes copy, paste,
delete and in-cell edits through the column so every write ends in
``commit_row``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from config import settings

from .columns import CellProps, ColumnDescriptor
from .key_column import EmptyCell
from .props import CellContext, resolve

__all__ = ["DuplicateColumnError", "Cell", "CellDispatcher"]

log = logging.getLogger(__name__)

Row = Mapping[str, Any]


class DuplicateColumnError(ValueError):
    """Raised when two columns of one table share an id."""


@dataclass(frozen=True)
class Cell:
    row_index: int
    column_id: str
    disabled: bool
    class_name: Optional[str]
    empty: bool
    content: Any


class _RowPosition(NamedTuple):
    """Key of a row without an id: valid only until the rows are replaced."""

    index: int
    generation: int


class CellDispatcher:
    """Cell-level operations for one table.

    ``on_row_change(index, new_row)`` is called whenever a cell operation
    produces a row that differs from the current one.

    Row setters and cell memos are keyed by row id (``id_field``), so a setter
    captured before the rows were re-sorted or refetched still writes to the
    row it was handed out for.
    """

    def __init__(
        self,
        columns: Sequence[ColumnDescriptor],
        rows: Sequence[Row] = (),
        *,
        on_row_change: Optional[Callable[[int, Row], None]] = None,
        id_field: str = settings.ROW_ID_FIELD,
    ) -> None:
        seen: set[str] = set()
        for col in columns:
            if not col.id:
                raise ValueError("every table column needs an id")
            if col.id in seen:
                raise DuplicateColumnError(f"duplicate column id {col.id!r}")
            seen.add(col.id)
        self.columns: List[ColumnDescriptor] = list(columns)
        self._by_id: Dict[str, ColumnDescriptor] = {c.id: c for c in self.columns}
        self.rows: List[Row] = list(rows)
        self.id_field = id_field
        self._on_row_change = on_row_change
        self._generation = 0
        self._setters: Dict[Any, Callable[[Any], None]] = {}
        self._memos: Dict[Tuple[Any, str], Dict[str, Any]] = {}

    # Rows ---------------------------------------------------------------
    def set_rows(self, rows: Sequence[Row]) -> None:
        self.rows = list(rows)
        self._generation += 1
        live = {self._row_key(i) for i in range(len(self.rows))}
        self._setters = {k: s for k, s in self._setters.items() if k in live}
        self._memos = {k: m for k, m in self._memos.items() if k[0] in live}

    def commit_row(self, row_index: int, row: Row) -> None:
        if self.rows[row_index] is row:
            return
        self.rows[row_index] = row
        if self._on_row_change is not None:
            self._on_row_change(row_index, row)

    def _row_key(self, row_index: int) -> Any:
        row = self.rows[row_index]
        rid = row.get(self.id_field) if isinstance(row, Mapping) else None
        return _RowPosition(row_index, self._generation) if rid is None else rid

    def index_of(self, row_key: Any) -> Optional[int]:
        if isinstance(row_key, _RowPosition):
            if row_key.generation == self._generation and row_key.index < len(self.rows):
                return row_key.index
            return None
        for i, row in enumerate(self.rows):
            if isinstance(row, Mapping) and row.get(self.id_field) == row_key:
                return i
        return None

    def row_setter(self, row_index: int) -> Callable[[Any], None]:
        """Stable setter for the row currently at ``row_index``.

        Accepts a new row or a function of the current row; the target row is
        looked up by id when the setter is called.
        """
        row_key = self._row_key(row_index)
        setter = self._setters.get(row_key)
        if setter is None:

            def setter(update: Any, _key: Any = row_key) -> None:
                index = self.index_of(_key)
                if index is None:
                    log.debug("dropping write to row %r: no longer in the table", _key)
                    return
                row = update(self.rows[index]) if callable(update) else update
                self.commit_row(index, row)

            self._setters[row_key] = setter
        return setter

    def cell_memo(self, row_index: int, column_id: str) -> Dict[str, Any]:
        return self._memos.setdefault((self._row_key(row_index), column_id), {})

    def column(self, column_id: str) -> ColumnDescriptor:
        return self._by_id[column_id]

    # Resolution ---------------------------------------------------------
    def _context(self, row_index: int, column: ColumnDescriptor) -> CellContext:
        return CellContext(row_data=self.rows[row_index], row_index=row_index, column_id=column.id)

    def is_disabled(self, row_index: int, column_id: str) -> bool:
        col = self._by_id[column_id]
        return bool(resolve(col.disabled, self._context(row_index, col)))

    def is_empty(self, row_index: int, column_id: str) -> bool:
        col = self._by_id[column_id]
        return bool(resolve(col.is_cell_empty, self._context(row_index, col)))

    def class_name(self, row_index: int, column_id: str) -> Optional[str]:
        col = self._by_id[column_id]
        return resolve(col.cell_class_name, self._context(row_index, col))

    def render(self, row_index: int, column_id: str, *, active: bool = False, focus: bool = False) -> Cell:
        col = self._by_id[column_id]
        disabled = self.is_disabled(row_index, column_id)
        if col.component is None:
            content: Any = EmptyCell(row_index=row_index, column_id=column_id)
        else:
            content = col.component(
                CellProps(
                    row_data=self.rows[row_index],
                    set_row_data=self.row_setter(row_index),
                    row_index=row_index,
                    column_id=column_id,
                    column_data=col.column_data,
                    active=active,
                    focus=focus and not disabled,
                    disabled=disabled,
                    memo=self.cell_memo(row_index, column_id),
                )
            )
        return Cell(
            row_index=row_index,
            column_id=column_id,
            disabled=disabled,
            class_name=self.class_name(row_index, column_id),
            empty=self.is_empty(row_index, column_id),
            content=content,
        )

    # Gestures -----------------------------------------------------------
    def copy(self, row_index: int, column_id: str) -> Any:
        col = self._by_id[column_id]
        if col.copy_value is None:
            return None
        return col.copy_value(self.rows[row_index], row_index)

    def paste(self, row_index: int, column_id: str, pasted: Any) -> bool:
        """Paste into a cell; returns False when the cell is disabled."""
        col = self._by_id[column_id]
        if col.paste_value is None or self.is_disabled(row_index, column_id):
            return False
        self.commit_row(row_index, col.paste_value(self.rows[row_index], pasted, row_index))
        return True

    def delete(self, row_index: int, column_id: str) -> bool:
        """Clear a cell; returns True when the row actually changed."""
        col = self._by_id[column_id]
        if col.delete_value is None or self.is_disabled(row_index, column_id):
            return False
        before = self.rows[row_index]
        after = col.delete_value(before, row_index)
        if after is before:
            log.debug("delete on row %s column %r left the row unchanged", row_index, column_id)
            return False
        self.commit_row(row_index, after)
        return True

    def copy_range(self, row_indexes: Sequence[int], column_ids: Sequence[str]) -> List[List[Any]]:
        return [[self.copy(r, c) for c in column_ids] for r in row_indexes]

    def paste_range(
        self, top: int, column_ids: Sequence[str], values: Sequence[Sequence[Any]]
    ) -> int:
        """Paste a block of values starting at row ``top``; returns cells written."""
        written = 0
        for offset, line in enumerate(values):
            row_index = top + offset
            if row_index >= len(self.rows):
                break
            for column_id, pasted in zip(column_ids, line):
                if self.paste(row_index, column_id, pasted):
                    written += 1
        return written
