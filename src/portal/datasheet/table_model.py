"""Qt item model exposing a CellDispatcher to QTableView.

The model is the rendering layer's entry point into the column operations:
display text comes from ``copy_value``, edits and clipboard pastes go through
``paste_value``, the delete key through ``delete_value`` (and therefore the
validation gate), and ``disabled`` decides whether a cell is editable.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from PyQt6.QtCore import QAbstractTableModel, QModelIndex, Qt, pyqtSignal

from .cell_dispatch import CellDispatcher
from .columns import ColumnDescriptor

__all__ = ["DataSheetTableModel", "CLASS_NAME_ROLE", "ROW_ROLE"]

ROW_ROLE = Qt.ItemDataRole.UserRole.value
CLASS_NAME_ROLE = ROW_ROLE + 1


class DataSheetTableModel(QAbstractTableModel):
    rowCommitted = pyqtSignal(int, object)  # row index, new row mapping

    def __init__(
        self,
        columns: Sequence[ColumnDescriptor],
        rows: Sequence[Mapping[str, Any]] = (),
        parent=None,
    ):
        super().__init__(parent)
        self._dispatcher = CellDispatcher(columns, rows, on_row_change=self._on_row_change)

    @property
    def dispatcher(self) -> CellDispatcher:
        return self._dispatcher

    def set_rows(self, rows: Sequence[Mapping[str, Any]]) -> None:
        self.beginResetModel()
        self._dispatcher.set_rows(rows)
        self.endResetModel()

    def rows(self) -> List[Mapping[str, Any]]:
        return list(self._dispatcher.rows)

    # Required overrides
    def rowCount(self, parent: QModelIndex = QModelIndex()):  # type: ignore[override]
        return 0 if parent.isValid() else len(self._dispatcher.rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()):  # type: ignore[override]
        return 0 if parent.isValid() else len(self._dispatcher.columns)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):  # type: ignore[override]
        if not index.isValid():
            return None
        column_id = self._column_id(index)
        if role in (Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole):
            value = self._dispatcher.copy(index.row(), column_id)
            return "" if value is None else str(value)
        if role == ROW_ROLE:
            return self._dispatcher.rows[index.row()]
        if role == CLASS_NAME_ROLE:
            return self._dispatcher.class_name(index.row(), column_id)
        return None

    def setData(self, index: QModelIndex, value: Any, role: int = Qt.ItemDataRole.EditRole):  # type: ignore[override]
        if not index.isValid() or role != Qt.ItemDataRole.EditRole:
            return False
        return self._dispatcher.paste(index.row(), self._column_id(index), value)

    def flags(self, index: QModelIndex):  # type: ignore[override]
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        flags = Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable
        if not self._dispatcher.is_disabled(index.row(), self._column_id(index)):
            flags |= Qt.ItemFlag.ItemIsEditable
        return flags

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):  # type: ignore[override]
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            if 0 <= section < len(self._dispatcher.columns):
                col = self._dispatcher.columns[section]
                return col.title or col.id
            return None
        return str(section + 1)

    # Gestures ------------------------------------------------------------
    def clear_cell(self, index: QModelIndex) -> bool:
        if not index.isValid():
            return False
        return self._dispatcher.delete(index.row(), self._column_id(index))

    def copy_text(self, indexes: Sequence[QModelIndex]) -> str:
        """Tab separated text for a rectangular selection."""
        valid = [i for i in indexes if i.isValid()]
        if not valid:
            return ""
        rows = sorted({i.row() for i in valid})
        cols = sorted({i.column() for i in valid})
        column_ids = [self._dispatcher.columns[c].id for c in cols]
        block = self._dispatcher.copy_range(rows, column_ids)
        return "\n".join("\t".join("" if v is None else str(v) for v in line) for line in block)

    def paste_text(self, top_left: QModelIndex, text: str) -> int:
        if not top_left.isValid():
            return 0
        lines = [line.split("\t") for line in text.replace("\r\n", "\n").rstrip("\n").split("\n")]
        width = max((len(line) for line in lines), default=0)
        first = top_left.column()
        column_ids = [c.id for c in self._dispatcher.columns[first : first + width]]
        return self._dispatcher.paste_range(top_left.row(), column_ids, lines)

    # Internal ------------------------------------------------------------
    def _column_id(self, index: QModelIndex) -> str:
        return self._dispatcher.columns[index.column()].id  # type: ignore[return-value]

    def _on_row_change(self, row_index: int, row: Mapping[str, Any]) -> None:
        last = max(len(self._dispatcher.columns) - 1, 0)
        self.dataChanged.emit(self.index(row_index, 0), self.index(row_index, last))
        self.rowCommitted.emit(row_index, row)

    def column_index(self, column_id: str) -> Optional[int]:
        for i, col in enumerate(self._dispatcher.columns):
            if col.id == column_id:
                return i
        return None
