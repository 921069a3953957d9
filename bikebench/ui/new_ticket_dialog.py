from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from PySide6.QtCore import QSignalBlocker, Qt
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from ..config import APP_NAME
from ..errors import StoreError, ValidationError
from ..logger import logger
from ..models.ticket_models import CustomerRecord, Ticket, TicketDraft, WorkMode
from ..services import customer_directory, ticket_service


class NewTicketDialog(QDialog):
    def __init__(
        self,
        *,
        draft: TicketDraft,
        customers: List[CustomerRecord],
        work_mode: WorkMode,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("New Bike")
        self.resize(520, 480)

        self._draft = draft
        self._customers = list(customers)
        self._work_mode = work_mode
        self._created: Optional[Ticket] = None

        layout = QVBoxLayout()
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)
        self.setLayout(layout)

        form_layout = QFormLayout()
        layout.addLayout(form_layout)

        self._name_input = QLineEdit(draft.customer_name)
        self._name_input.setPlaceholderText("Customer name")
        self._name_input.textEdited.connect(self._on_name_edited)
        form_layout.addRow("Name", self._name_input)

        self._phone_input = QLineEdit(draft.customer_phone)
        self._phone_input.setPlaceholderText("Phone")
        self._phone_input.textEdited.connect(self._on_phone_edited)
        form_layout.addRow("Phone", self._phone_input)

        self._description_input: Optional[QTextEdit] = None
        self._task_list: Optional[QListWidget] = None
        self._task_input: Optional[QLineEdit] = None

        if work_mode == WorkMode.TEXT:
            self._description_input = QTextEdit()
            self._description_input.setPlaceholderText("Work to be done")
            self._description_input.setPlainText(draft.description)
            self._description_input.textChanged.connect(self._on_description_changed)
            layout.addWidget(QLabel("Work"))
            layout.addWidget(self._description_input, stretch=1)
        else:
            layout.addWidget(QLabel("Tasks"))
            task_row = QHBoxLayout()
            self._task_input = QLineEdit()
            self._task_input.setPlaceholderText("Add task...")
            self._task_input.returnPressed.connect(self._handle_add_task)
            add_button = QPushButton("Add")
            add_button.setAutoDefault(False)
            add_button.clicked.connect(self._handle_add_task)
            remove_button = QPushButton("Remove")
            remove_button.setAutoDefault(False)
            remove_button.clicked.connect(self._handle_remove_task)
            task_row.addWidget(self._task_input, stretch=1)
            task_row.addWidget(add_button)
            task_row.addWidget(remove_button)
            layout.addLayout(task_row)

            self._task_list = QListWidget()
            self._task_list.itemChanged.connect(self._on_task_item_changed)
            layout.addWidget(self._task_list, stretch=1)
            self._render_tasks()

        button_box = QDialogButtonBox(QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel)
        button_box.accepted.connect(self.accept)
        button_box.rejected.connect(self.reject)
        layout.addWidget(button_box)

    @property
    def created_ticket(self) -> Optional[Ticket]:
        return self._created

    def accept(self) -> None:  # noqa: D401
        try:
            self._created = ticket_service.create_ticket_from_draft(self._draft, self._work_mode)
        except ValidationError as exc:
            QMessageBox.warning(self, APP_NAME, str(exc))
            return
        except StoreError as exc:
            logger.exception("Ticket creation failed")
            QMessageBox.warning(self, APP_NAME, str(exc))
            return
        super().accept()

    def _on_name_edited(self, text: str) -> None:
        self._draft = ticket_service.set_customer_name(self._draft, text)

    def _on_phone_edited(self, text: str) -> None:
        previous_name = self._draft.customer_name
        self._draft = customer_directory.autofill_name(
            self._draft,
            self._draft.customer_phone,
            text,
            self._customers,
        )
        if self._draft.customer_name != previous_name:
            blocker = QSignalBlocker(self._name_input)
            self._name_input.setText(self._draft.customer_name)
            del blocker

    def _on_description_changed(self) -> None:
        if self._description_input is None:
            return
        self._draft = replace(self._draft, description=self._description_input.toPlainText())

    def _handle_add_task(self) -> None:
        if self._task_input is None:
            return
        self._draft = ticket_service.add_task(self._draft, self._task_input.text())
        self._task_input.clear()
        self._render_tasks()

    def _handle_remove_task(self) -> None:
        if self._task_list is None:
            return
        row = self._task_list.currentRow()
        if row < 0:
            return
        self._draft = ticket_service.remove_task(self._draft, row)
        self._render_tasks()

    def _on_task_item_changed(self, item: QListWidgetItem) -> None:
        if self._task_list is None:
            return
        row = self._task_list.row(item)
        if not 0 <= row < len(self._draft.tasks):
            return
        checked = item.checkState() == Qt.CheckState.Checked
        if checked != self._draft.tasks[row].done:
            self._draft = ticket_service.toggle_task(self._draft, row)

    def _render_tasks(self) -> None:
        if self._task_list is None:
            return
        blocker = QSignalBlocker(self._task_list)
        self._task_list.clear()
        for task in self._draft.tasks:
            item = QListWidgetItem(task.text)
            item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable)
            item.setCheckState(Qt.CheckState.Checked if task.done else Qt.CheckState.Unchecked)
            self._task_list.addItem(item)
        del blocker
