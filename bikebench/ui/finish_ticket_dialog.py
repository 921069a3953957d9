from __future__ import annotations

from typing import List, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QAbstractItemView,
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..config import APP_NAME
from ..errors import ValidationError
from ..models.ticket_models import BillingDraft, BillingMode, LineItemDraft, Ticket
from ..services import billing_service


class FinishTicketDialog(QDialog):
    """Collects the final price, either one amount or a list of charges."""

    def __init__(self, *, ticket: Ticket, draft: BillingDraft, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(f"Finish bike - {ticket.customer_name}")
        self.resize(520, 360)

        self._mode = draft.mode
        self._draft = draft
        self._price_input: Optional[QLineEdit] = None
        self._table: Optional[QTableWidget] = None
        self._total_label = QLabel()
        self._total_label.setStyleSheet("font-weight: bold;")

        layout = QVBoxLayout()
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)
        self.setLayout(layout)

        if self._mode == BillingMode.FLAT:
            self._price_input = QLineEdit(draft.price_text)
            self._price_input.setPlaceholderText("Final price (€)")
            layout.addWidget(self._price_input)
        else:
            self._table = QTableWidget(0, 2)
            self._table.setHorizontalHeaderLabels(["Concept", "Amount (€)"])
            header = self._table.horizontalHeader()
            header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
            header.setSectionResizeMode(1, QHeaderView.ResizeMode.ResizeToContents)
            self._table.verticalHeader().setVisible(False)
            self._table.setAlternatingRowColors(True)
            self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
            self._table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
            layout.addWidget(self._table)

            button_row = QHBoxLayout()
            add_button = QPushButton("Add")
            add_button.setAutoDefault(False)
            add_button.clicked.connect(self._handle_add_row)
            remove_button = QPushButton("Remove")
            remove_button.setAutoDefault(False)
            remove_button.clicked.connect(self._handle_remove_row)
            button_row.addWidget(add_button)
            button_row.addWidget(remove_button)
            button_row.addStretch(1)
            button_row.addWidget(self._total_label)
            layout.addLayout(button_row)

            for item in draft.items:
                self._append_item(item)
            if self._table.rowCount() == 0:
                self._append_item()
            self._table.itemChanged.connect(self._refresh_total)
            self._refresh_total()

        button_box = QDialogButtonBox(QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel)
        button_box.button(QDialogButtonBox.StandardButton.Ok).setText("Send WhatsApp")
        button_box.accepted.connect(self.accept)
        button_box.rejected.connect(self.reject)
        layout.addWidget(button_box)

    def billing_draft(self) -> BillingDraft:
        return self._draft

    def accept(self) -> None:  # noqa: D401
        draft = self._collect_draft()
        try:
            billing_service.compose_billing(draft)
        except ValidationError as exc:
            QMessageBox.warning(self, APP_NAME, str(exc))
            return
        self._draft = draft
        super().accept()

    def _append_item(self, item: Optional[LineItemDraft] = None) -> None:
        if self._table is None:
            return
        row = self._table.rowCount()
        self._table.insertRow(row)

        label_item = QTableWidgetItem(item.label if item else "")
        amount_item = QTableWidgetItem(item.amount_text if item else "")
        amount_item.setTextAlignment(int(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter))

        self._table.setItem(row, 0, label_item)
        self._table.setItem(row, 1, amount_item)

    def _handle_add_row(self) -> None:
        self._append_item()
        self._refresh_total()

    def _handle_remove_row(self) -> None:
        if self._table is None:
            return
        current = self._table.currentRow()
        if current < 0:
            return
        self._table.removeRow(current)
        if self._table.rowCount() == 0:
            self._append_item()
        self._refresh_total()

    def _refresh_total(self, *_args) -> None:
        total = billing_service.running_total(self._collect_items())
        self._total_label.setText(f"Total: {total:.2f}€")

    def _collect_items(self) -> List[LineItemDraft]:
        if self._table is None:
            return []
        items: List[LineItemDraft] = []
        for row in range(self._table.rowCount()):
            label_item = self._table.item(row, 0)
            amount_item = self._table.item(row, 1)
            items.append(
                LineItemDraft(
                    label=label_item.text() if label_item else "",
                    amount_text=amount_item.text() if amount_item else "",
                )
            )
        return items

    def _collect_draft(self) -> BillingDraft:
        if self._mode == BillingMode.FLAT:
            price_text = self._price_input.text() if self._price_input else ""
            return BillingDraft(mode=BillingMode.FLAT, price_text=price_text)
        return BillingDraft(mode=BillingMode.ITEMIZED, items=self._collect_items())
