"""Editable data-sheet columns.

Qt-free building blocks (descriptors, key columns, validation, dispatch). The
Qt item model lives in ``portal.datasheet.table_model`` and is imported
explicitly by GUI code.
"""

from .cell_dispatch import Cell, CellDispatcher, DuplicateColumnError
from .columns import CellProps, ColumnDescriptor, int_column, text_column
from .key_column import EmptyCell, key_column
from .props import CellContext, Computed, Static, resolve
from .validation import PydanticSchema, ValidationFailure, ValidationSuccess, validate

__all__ = [
    "Cell",
    "CellDispatcher",
    "DuplicateColumnError",
    "CellProps",
    "ColumnDescriptor",
    "int_column",
    "text_column",
    "EmptyCell",
    "key_column",
    "CellContext",
    "Computed",
    "Static",
    "resolve",
    "PydanticSchema",
    "ValidationFailure",
    "ValidationSuccess",
    "validate",
]
