"""Column descriptors for editable data tables.

A :class:`ColumnDescriptor` declares how one column's cells render, copy,
paste, delete and validate. Descriptors are built once when a table is
defined and never mutated afterwards.

Value-scoped descriptors (``ColumnDescriptor[V]``) see a bare field value;
:func:`portal.datasheet.key_column.key_column` lifts them to row scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Mapping, Optional, TypeVar

from .props import Prop, Static, as_prop
from .validation import ValidationSchema

__all__ = [
    "CellProps",
    "ColumnDescriptor",
    "text_column",
    "int_column",
    "schema_of",
]

V = TypeVar("V")

CopyFn = Callable[[Any, int], Any]
DeleteFn = Callable[[Any, int], Any]
PasteFn = Callable[[Any, Any, int], Any]


@dataclass
class CellProps:
    """Arguments handed to a cell render component.

    ``set_row_data`` takes either a new row or a function of the current row
    returning the new one; the function form is applied to the row as it is at
    commit time. ``memo`` is a per-cell dict owned by the renderer and kept
    across renders of the same cell (``None`` when the renderer keeps none).
    """

    row_data: Any
    set_row_data: Callable[[Any], None]
    row_index: int
    column_id: str
    column_data: Any = None
    active: bool = False
    focus: bool = False
    disabled: bool = False
    memo: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ColumnDescriptor(Generic[V]):
    id: Optional[str] = None
    title: str = ""
    component: Optional[Callable[[CellProps], Any]] = None
    column_data: Any = None
    copy_value: Optional[CopyFn] = None
    delete_value: Optional[DeleteFn] = None
    paste_value: Optional[PasteFn] = None
    disabled: Prop[bool] = field(default_factory=lambda: Static(False))
    cell_class_name: Prop[Optional[str]] = field(default_factory=lambda: Static(None))
    is_cell_empty: Prop[bool] = field(default_factory=lambda: Static(False))
    validation_schema: Optional[ValidationSchema] = None

    def __post_init__(self) -> None:
        # Accept plain values / callables for the value-or-function props
        object.__setattr__(self, "disabled", as_prop(self.disabled))
        object.__setattr__(self, "cell_class_name", as_prop(self.cell_class_name))
        object.__setattr__(self, "is_cell_empty", as_prop(self.is_cell_empty))


def schema_of(column: ColumnDescriptor) -> Optional[ValidationSchema]:
    """Validation schema carried by the descriptor or by its payload."""
    if column.validation_schema is not None:
        return column.validation_schema
    data = column.column_data
    if isinstance(data, Mapping):
        return data.get("validation_schema")
    return getattr(data, "validation_schema", None)


def _text_paste(value: Any, pasted: Any, index: int) -> Optional[str]:
    text = str(pasted).replace("\r", "").replace("\n", " ").strip() if pasted is not None else ""
    return text or None


def _int_paste(value: Any, pasted: Any, index: int) -> Optional[int]:
    try:
        return int(str(pasted).strip().replace(",", ""))
    except (TypeError, ValueError):
        return None


def text_column(
    *,
    title: str = "",
    component: Optional[Callable[[CellProps], Any]] = None,
    disabled: Any = False,
    validation_schema: Optional[ValidationSchema] = None,
) -> ColumnDescriptor[Optional[str]]:
    """Plain text cell: copies as-is, pastes trimmed single-line text, deletes to None."""
    return ColumnDescriptor(
        title=title,
        component=component,
        copy_value=lambda value, index: value,
        delete_value=lambda value, index: None,
        paste_value=_text_paste,
        disabled=disabled,
        is_cell_empty=lambda ctx: ctx.row_data in (None, ""),
        validation_schema=validation_schema,
    )


def int_column(
    *,
    title: str = "",
    component: Optional[Callable[[CellProps], Any]] = None,
    disabled: Any = False,
    validation_schema: Optional[ValidationSchema] = None,
) -> ColumnDescriptor[Optional[int]]:
    return ColumnDescriptor(
        title=title,
        component=component,
        copy_value=lambda value, index: None if value is None else str(value),
        delete_value=lambda value, index: None,
        paste_value=_int_paste,
        disabled=disabled,
        is_cell_empty=lambda ctx: ctx.row_data is None,
        validation_schema=validation_schema,
    )
