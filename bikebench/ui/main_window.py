from __future__ import annotations

from typing import List, Optional

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices, QIcon
from PySide6.QtWidgets import (
    QAbstractItemView,
    QButtonGroup,
    QComboBox,
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTableView,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from ..config import APP_NAME, APP_VERSION
from ..errors import StoreError, ValidationError
from ..logger import logger
from ..models.ticket_models import (
    BillingDraft,
    BillingMode,
    ShopSettings,
    TaskList,
    Ticket,
    TicketState,
    WorkMode,
)
from ..resources import get_app_icon_path
from ..services import customer_directory, ticket_service
from ..viewmodels import ui_state
from ..viewmodels.table_models import TicketTableModel
from .finish_ticket_dialog import FinishTicketDialog
from .new_ticket_dialog import NewTicketDialog


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle(f"{APP_NAME} {APP_VERSION}")
        self.setWindowIcon(QIcon(str(get_app_icon_path())))
        self.resize(1100, 760)

        self._tickets_cache: List[Ticket] = []
        self._visible_tickets: List[Ticket] = []
        self._current_state = TicketState.IN_PROGRESS
        self._ui_state: ui_state.UiState = ui_state.Idle()
        self._settings: ShopSettings = ticket_service.get_shop_settings()

        self._tab_widget = QTabWidget()
        self.setCentralWidget(self._tab_widget)

        self._workshop_tab = QWidget()
        self._settings_tab = QWidget()
        self._tab_widget.addTab(self._workshop_tab, "Workshop")
        self._tab_widget.addTab(self._settings_tab, "Settings")

        self._shop_title_label: QLabel
        self._in_progress_count_label: QLabel
        self._search_input: QLineEdit
        self._state_buttons: QButtonGroup
        self._tickets_model: TicketTableModel
        self._tickets_table: QTableView
        self._finish_button: QPushButton
        self._delete_button: QPushButton
        self._status_label: QLabel

        self._shop_name_input: QLineEdit
        self._callback_phone_input: QLineEdit
        self._country_code_input: QLineEdit
        self._work_mode_combo: QComboBox
        self._billing_mode_combo: QComboBox
        self._deep_link_combo: QComboBox
        self._settings_status_label: QLabel

        self._build_workshop_tab()
        self._build_settings_tab()
        self._reload_tickets()

    # Workshop tab
    def _build_workshop_tab(self) -> None:
        layout = QVBoxLayout()
        self._workshop_tab.setLayout(layout)

        header = QHBoxLayout()
        self._shop_title_label = QLabel(self._settings.shop_name)
        self._shop_title_label.setStyleSheet("font-size: 22px; font-weight: bold; color: #ea580c;")
        header.addWidget(self._shop_title_label)
        header.addStretch(1)
        self._in_progress_count_label = QLabel("0 bikes in the workshop")
        self._in_progress_count_label.setStyleSheet("font-size: 16px; font-weight: bold;")
        header.addWidget(self._in_progress_count_label)
        layout.addLayout(header)

        state_row = QHBoxLayout()
        self._state_buttons = QButtonGroup(self)
        self._state_buttons.setExclusive(True)
        for label, state in (("In Progress", TicketState.IN_PROGRESS), ("Finished", TicketState.FINISHED)):
            button = QPushButton(label)
            button.setCheckable(True)
            button.setChecked(state == self._current_state)
            button.clicked.connect(lambda _checked=False, value=state: self._on_state_tab_changed(value))
            self._state_buttons.addButton(button)
            state_row.addWidget(button)
        layout.addLayout(state_row)

        search_row = QHBoxLayout()
        self._search_input = QLineEdit()
        self._search_input.setPlaceholderText("Search by name or phone...")
        self._search_input.textChanged.connect(self._apply_filters)
        search_row.addWidget(self._search_input, stretch=1)
        new_button = QPushButton("New Bike")
        new_button.clicked.connect(self._handle_new_ticket)
        search_row.addWidget(new_button)
        layout.addLayout(search_row)

        self._tickets_model = TicketTableModel(
            (
                ("Customer", lambda ticket: ticket.customer_name),
                ("Phone", lambda ticket: ticket.customer_phone),
                ("Received", lambda ticket: ticket.created_at.strftime("%d/%m/%Y")),
                ("Work", lambda ticket: ticket.work.summary),
                ("Progress", self._progress_text),
                ("Total", lambda ticket: ticket.total_display),
            ),
            tooltip=lambda ticket: ticket.work.summary,
        )
        self._tickets_table = QTableView()
        self._tickets_table.setModel(self._tickets_model)
        self._configure_table(self._tickets_table)
        self._tickets_table.selectionModel().currentRowChanged.connect(self._update_action_buttons)
        layout.addWidget(self._tickets_table, stretch=1)

        action_row = QHBoxLayout()
        self._status_label = QLabel("")
        action_row.addWidget(self._status_label, stretch=1)
        self._finish_button = QPushButton("Mark Ready")
        self._finish_button.clicked.connect(self._handle_finish_ticket)
        action_row.addWidget(self._finish_button)
        self._delete_button = QPushButton("Delete")
        self._delete_button.clicked.connect(self._handle_delete_ticket)
        action_row.addWidget(self._delete_button)
        layout.addLayout(action_row)

        self._update_action_buttons()

    def _reload_tickets(self) -> None:
        try:
            self._tickets_cache = ticket_service.list_tickets()
        except StoreError as exc:
            logger.exception("Ticket reload failed")
            self._set_status(str(exc), error=True)
        count = ticket_service.count_in_progress(self._tickets_cache)
        self._in_progress_count_label.setText(f"{count} bikes in the workshop")
        self._apply_filters()

    def _apply_filters(self, *_args) -> None:
        self._visible_tickets = ticket_service.filter_tickets(
            self._tickets_cache,
            self._current_state,
            self._search_input.text(),
        )
        self._tickets_model.update_rows(self._visible_tickets)
        self._update_action_buttons()

    def _on_state_tab_changed(self, state: TicketState) -> None:
        self._current_state = state
        self._apply_filters()

    def _selected_ticket(self) -> Optional[Ticket]:
        index = self._tickets_table.currentIndex()
        if not index.isValid():
            return None
        return self._tickets_model.row_at(index.row())

    def _update_action_buttons(self, *_args) -> None:
        ticket = self._selected_ticket()
        self._finish_button.setEnabled(ticket is not None and ticket.state == TicketState.IN_PROGRESS)
        self._delete_button.setEnabled(ticket is not None)

    def _handle_new_ticket(self) -> None:
        self._ui_state = ui_state.start_creating(self._ui_state)
        if not isinstance(self._ui_state, ui_state.Creating):
            return

        try:
            customers = customer_directory.list_customers()
        except StoreError:
            logger.exception("Customer directory unavailable")
            customers = []

        dialog = NewTicketDialog(
            draft=self._ui_state.draft,
            customers=customers,
            work_mode=self._settings.work_mode,
            parent=self,
        )
        try:
            if dialog.exec() != QDialog.DialogCode.Accepted:
                return
            created = dialog.created_ticket
            if created is not None:
                self._set_status(f"Bike for {created.customer_name} registered.")
        finally:
            self._ui_state = ui_state.close(self._ui_state)
        self._reload_tickets()

    def _handle_finish_ticket(self) -> None:
        ticket = self._selected_ticket()
        if ticket is None or ticket.id is None:
            self._show_message("Select a bike before marking it ready.")
            return

        draft = BillingDraft(mode=self._settings.billing_mode)
        self._ui_state = ui_state.start_finishing(self._ui_state, ticket.id, draft)
        if not isinstance(self._ui_state, ui_state.Finishing):
            return

        dialog = FinishTicketDialog(ticket=ticket, draft=self._ui_state.billing_draft, parent=self)
        try:
            if dialog.exec() != QDialog.DialogCode.Accepted:
                return
            try:
                finished, message = ticket_service.finish_ticket(
                    ticket.id,
                    dialog.billing_draft(),
                    snapshot=ticket,
                    settings=self._settings,
                )
            except ValidationError as exc:
                self._set_status(str(exc), error=True)
                QMessageBox.warning(self, APP_NAME, str(exc))
                return
            except StoreError as exc:
                logger.exception("Finishing ticket %s failed", ticket.id)
                self._set_status(str(exc), error=True)
                return

            if not QDesktopServices.openUrl(QUrl(message.deep_link)):
                # The ticket stays finished; the operator can resend by hand.
                logger.warning("Could not open WhatsApp link for ticket %s", finished.id)
                self._set_status("Bike marked ready, but WhatsApp could not be opened.", error=True)
            else:
                self._set_status(f"Bike for {finished.customer_name} marked ready.")
        finally:
            self._ui_state = ui_state.close(self._ui_state)
            self._reload_tickets()

    def _handle_delete_ticket(self) -> None:
        ticket = self._selected_ticket()
        if ticket is None or ticket.id is None:
            self._show_message("Select a bike before deleting.")
            return

        self._ui_state = ui_state.start_deleting(self._ui_state, ticket.id)
        if not isinstance(self._ui_state, ui_state.ConfirmingDelete):
            return

        def confirm() -> bool:
            answer = QMessageBox.question(
                self,
                APP_NAME,
                f"Delete the bike of {ticket.customer_name}? This action cannot be undone.",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                QMessageBox.StandardButton.No,
            )
            return answer == QMessageBox.StandardButton.Yes

        try:
            if ticket_service.delete_ticket(ticket.id, confirm=confirm):
                self._set_status("Bike deleted.")
        except StoreError as exc:
            logger.exception("Deleting ticket %s failed", ticket.id)
            self._set_status(str(exc), error=True)
        finally:
            self._ui_state = ui_state.close(self._ui_state)
        self._reload_tickets()

    # Settings tab
    def _build_settings_tab(self) -> None:
        layout = QVBoxLayout()
        self._settings_tab.setLayout(layout)

        form_layout = QFormLayout()
        layout.addLayout(form_layout)

        self._shop_name_input = QLineEdit()
        form_layout.addRow("Shop Name", self._shop_name_input)

        self._callback_phone_input = QLineEdit()
        form_layout.addRow("Callback Phone", self._callback_phone_input)

        self._country_code_input = QLineEdit()
        self._country_code_input.setMaxLength(4)
        form_layout.addRow("Country Code", self._country_code_input)

        self._work_mode_combo = QComboBox()
        self._work_mode_combo.addItem("Task checklist", WorkMode.TASKS)
        self._work_mode_combo.addItem("Free text", WorkMode.TEXT)
        form_layout.addRow("Work Description", self._work_mode_combo)

        self._billing_mode_combo = QComboBox()
        self._billing_mode_combo.addItem("Itemized charges", BillingMode.ITEMIZED)
        self._billing_mode_combo.addItem("Single price", BillingMode.FLAT)
        form_layout.addRow("Billing", self._billing_mode_combo)

        self._deep_link_combo = QComboBox()
        self._deep_link_combo.addItem("WhatsApp app (wa.me)", "direct")
        self._deep_link_combo.addItem("WhatsApp Web", "web")
        form_layout.addRow("Send Via", self._deep_link_combo)

        save_button = QPushButton("Save Settings")
        save_button.clicked.connect(self._handle_save_settings)
        layout.addWidget(save_button)

        self._settings_status_label = QLabel("")
        layout.addWidget(self._settings_status_label)
        layout.addStretch(1)

        self._load_settings_into_form(self._settings)

    def _load_settings_into_form(self, settings: ShopSettings) -> None:
        self._shop_name_input.setText(settings.shop_name)
        self._callback_phone_input.setText(settings.callback_phone)
        self._country_code_input.setText(settings.country_code)
        self._work_mode_combo.setCurrentIndex(max(0, self._work_mode_combo.findData(settings.work_mode)))
        self._billing_mode_combo.setCurrentIndex(max(0, self._billing_mode_combo.findData(settings.billing_mode)))
        self._deep_link_combo.setCurrentIndex(max(0, self._deep_link_combo.findData(settings.deep_link_scheme)))

    def _handle_save_settings(self) -> None:
        updated = ShopSettings(
            shop_name=self._shop_name_input.text(),
            callback_phone=self._callback_phone_input.text(),
            country_code=self._country_code_input.text(),
            work_mode=self._work_mode_combo.currentData(),
            billing_mode=self._billing_mode_combo.currentData(),
            deep_link_scheme=self._deep_link_combo.currentData(),
        )
        try:
            self._settings = ticket_service.update_shop_settings(updated)
        except StoreError as exc:
            logger.exception("Saving settings failed")
            self._settings_status_label.setStyleSheet("color: #d32f2f;")
            self._settings_status_label.setText(f"Failed to save settings: {exc}")
            return

        self._load_settings_into_form(self._settings)
        self._shop_title_label.setText(self._settings.shop_name)
        self._settings_status_label.setStyleSheet("color: #2e7d32;")
        self._settings_status_label.setText("Settings saved.")

    @staticmethod
    def _progress_text(ticket: Ticket) -> str:
        if isinstance(ticket.work, TaskList) and ticket.work.tasks:
            return f"{ticket.work.completed_count}/{len(ticket.work.tasks)}"
        return ""

    def _set_status(self, message: str, *, error: bool = False) -> None:
        palette = "color: #d32f2f;" if error else "color: #2e7d32;"
        self._status_label.setStyleSheet(palette)
        self._status_label.setText(message)

    def _configure_table(self, table: QTableView) -> None:
        header = table.horizontalHeader()
        header.setStretchLastSection(True)
        header.setSectionResizeMode(QHeaderView.ResizeMode.Interactive)
        table.setAlternatingRowColors(True)
        table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)

    def _show_message(self, message: str) -> None:
        QMessageBox.information(self, APP_NAME, message)
