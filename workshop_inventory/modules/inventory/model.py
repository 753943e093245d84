from __future__ import annotations

from typing import Any, List, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PySide6.QtGui import QBrush, QColor

from ...database.repositories.materials_repo import Material
from ...database.repositories.transactions_repo import StockTransaction
from ...utils.helpers import date_part, fmt_money, fmt_qty

_LOW_STOCK_COLOR = "#fdecea"


class MaterialsTableModel(QAbstractTableModel):
    """
    Table model for the materials list.

    Rows at or under their reorder threshold get a light red background;
    `min_stock` is display-only and never blocks a movement.
    """
    HEADERS: List[str] = ["Name", "Category", "Unit", "Qty", "Min", "Cost/Unit", "Supplier"]
    NUMERIC_COLS = (3, 4, 5)

    def __init__(self, rows: Optional[Sequence[Material]] = None) -> None:
        super().__init__()
        self._rows: List[Material] = list(rows or [])

    # ---------- Qt model basics ----------

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid():
            return None

        m = self._rows[index.row()]
        col = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            if col == 0:
                return m.name
            elif col == 1:
                return m.category
            elif col == 2:
                return m.unit
            elif col == 3:
                return fmt_qty(m.quantity)
            elif col == 4:
                return fmt_qty(m.min_stock)
            elif col == 5:
                return fmt_money(m.cost_per_unit)
            elif col == 6:
                return m.supplier or ""

        if role == Qt.BackgroundRole and m.is_low_stock:
            return QBrush(QColor(_LOW_STOCK_COLOR))

        if role == Qt.TextAlignmentRole and col in self.NUMERIC_COLS:
            return int(Qt.AlignRight | Qt.AlignVCenter)

        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            try:
                return self.HEADERS[section]
            except IndexError:
                return ""
        return super().headerData(section, orientation, role)

    # ---------- Convenience helpers ----------

    def replace(self, rows: Sequence[Material]) -> None:
        """Replace all rows at once (keeps column schema unchanged)."""
        self.beginResetModel()
        self._rows = list(rows or [])
        self.endResetModel()

    def material_at(self, row: int) -> Material:
        return self._rows[row]


class TransactionsTableModel(QAbstractTableModel):
    """
    Table model for stock movements.

    Names come from the snapshot stored on each row, so renaming a worker or
    sofa model later does not change what this table shows.
    """
    HEADERS: List[str] = ["Date", "Type", "Material", "Qty", "Worker", "Sofa Model", "Details", "Notes"]

    def __init__(self, rows: Optional[Sequence[StockTransaction]] = None) -> None:
        super().__init__()
        self._rows: List[StockTransaction] = list(rows or [])

    # ---------- Qt model basics ----------

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid():
            return None

        t = self._rows[index.row()]
        col = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            if col == 0:
                return date_part(t.date)
            elif col == 1:
                return "IN" if t.type == "in" else "OUT"
            elif col == 2:
                return t.material_name
            elif col == 3:
                sign = "+" if t.type == "in" else "-"
                return f"{sign}{fmt_qty(t.quantity)}"
            elif col == 4:
                return t.worker_name or ""
            elif col == 5:
                return t.sofa_model_name or ""
            elif col == 6:
                return t.sofa_details or ""
            elif col == 7:
                return str(t.notes) if t.notes is not None else ""

        if role == Qt.ForegroundRole and col in (1, 3):
            return QBrush(QColor("#1b7f3b" if t.type == "in" else "#b3261e"))

        if role == Qt.TextAlignmentRole and col == 3:
            return int(Qt.AlignRight | Qt.AlignVCenter)

        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            try:
                return self.HEADERS[section]
            except IndexError:
                return ""
        return super().headerData(section, orientation, role)

    # ---------- Convenience helpers ----------

    def replace(self, rows: Sequence[StockTransaction]) -> None:
        self.beginResetModel()
        self._rows = list(rows or [])
        self.endResetModel()

    def transaction_at(self, row: int) -> StockTransaction:
        """Return the raw transaction for a given row (useful in tests/controllers)."""
        return self._rows[row]
