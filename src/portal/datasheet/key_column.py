"""Bind a value-scoped column to one field of a row.

``key_column("email", text_column())`` produces a row-scoped descriptor whose
id is ``"email"`` and whose copy/paste/delete operations read and write only
``row["email"]``. Deletes are gated by the inner column's validation schema:
an invalid post-delete value leaves the row untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .columns import CellProps, ColumnDescriptor, schema_of
from .props import project
from .validation import ValidationFailure, validate

__all__ = ["KeyColumnData", "KeyCellComponent", "EmptyCell", "field_setter", "key_column"]

log = logging.getLogger(__name__)

Row = Mapping[str, Any]


@dataclass(frozen=True)
class KeyColumnData:
    key: str
    original: ColumnDescriptor


@dataclass(frozen=True)
class EmptyCell:
    """Placeholder rendered when a column has no component.

    It still carries the cell address so keyboard navigation and paste keep
    working on it.
    """

    row_index: int
    column_id: str


def field_setter(key: str, set_row_data: Callable[[Any], None]) -> Callable[[Any], None]:
    """Setter for ``row[key]`` that merges into the row current at commit time."""

    def set_key_data(value: Any) -> None:
        set_row_data(lambda current: {**(current or {}), key: value})

    return set_key_data


class KeyCellComponent:
    """Render component shared by every key column.

    Holds no per-table state. The field setter handed to the inner component
    is kept in the cell's ``memo`` (owned by the renderer), so it is built once
    per cell and dropped together with the table that rendered it.
    """

    def __call__(self, props: CellProps) -> Any:
        data: KeyColumnData = props.column_data
        key, original = data.key, data.original
        setter = self.setter_for(key, props)

        if original.component is None:
            return EmptyCell(row_index=props.row_index, column_id=props.column_id)
        row = props.row_data or {}
        return original.component(
            CellProps(
                row_data=row.get(key),
                set_row_data=setter,
                row_index=props.row_index,
                column_id=props.column_id,
                column_data=original.column_data if original.column_data is not None else {},
                active=props.active,
                focus=props.focus,
                disabled=props.disabled,
            )
        )

    @staticmethod
    def setter_for(key: str, props: CellProps) -> Callable[[Any], None]:
        memo = props.memo
        if memo is None:
            return field_setter(key, props.set_row_data)
        slot = f"key_setter:{key}"
        entry = memo.get(slot)
        # Rebuilt only when the renderer hands over a different row setter
        if entry is None or entry[0] is not props.set_row_data:
            entry = memo[slot] = (props.set_row_data, field_setter(key, props.set_row_data))
        return entry[1]


def key_column(key: str, column: ColumnDescriptor) -> ColumnDescriptor[Row]:
    def copy_value(row: Row, index: int) -> Any:
        if column.copy_value is None:
            return None
        return column.copy_value(row.get(key), index)

    def delete_value(row: Row, index: int) -> Row:
        deleted = column.delete_value(row.get(key), index) if column.delete_value else None
        outcome = validate(schema_of(column), deleted)
        if isinstance(outcome, ValidationFailure):
            log.warning(
                "Validation failed for key %r after delete attempt: %s. Change prevented.",
                key,
                outcome.summary(),
            )
            return row
        return {**row, key: deleted}

    def paste_value(row: Row, pasted: Any, index: int) -> Row:
        value: Optional[Any] = None
        if column.paste_value is not None:
            value = column.paste_value(row.get(key), pasted, index)
        return {**row, key: value}

    return ColumnDescriptor(
        id=key,
        title=column.title or key,
        component=KeyCellComponent(),
        column_data=KeyColumnData(key=key, original=column),
        copy_value=copy_value,
        delete_value=delete_value,
        paste_value=paste_value,
        disabled=project(column.disabled, key),
        cell_class_name=project(column.cell_class_name, key),
        is_cell_empty=project(column.is_cell_empty, key),
    )
