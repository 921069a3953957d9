from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt


ColumnAccessor = Callable[[object], object]


class TicketTableModel(QAbstractTableModel):
    """Read-only table over a list of rows, rebuilt wholesale on every reload."""

    def __init__(
        self,
        columns: Sequence[tuple[str, ColumnAccessor]],
        rows: Iterable[object] | None = None,
        *,
        tooltip: Optional[ColumnAccessor] = None,
    ) -> None:
        super().__init__()
        self._columns: List[tuple[str, ColumnAccessor]] = list(columns)
        self._rows: List[object] = list(rows or [])
        self._tooltip = tooltip

    def rowCount(self, parent: QModelIndex | None = None) -> int:  # noqa: N802
        if parent and parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex | None = None) -> int:  # noqa: N802
        return len(self._columns)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> object | None:  # noqa: N802
        if not index.isValid() or not (0 <= index.row() < len(self._rows)):
            return None

        row = self._rows[index.row()]
        if role == Qt.ItemDataRole.DisplayRole:
            _, accessor = self._columns[index.column()]
            value = accessor(row)
            return "" if value is None else str(value)

        if role == Qt.ItemDataRole.ToolTipRole and self._tooltip is not None:
            return self._tooltip(row)

        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole) -> object | None:  # noqa: N802
        if orientation == Qt.Orientation.Horizontal and role == Qt.ItemDataRole.DisplayRole:
            title, _ = self._columns[section]
            return title
        return super().headerData(section, orientation, role)

    def row_at(self, row: int) -> Optional[object]:
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def update_rows(self, rows: Iterable[object]) -> None:
        self.beginResetModel()
        self._rows = list(rows)
        self.endResetModel()
