from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QMessageBox,
    QPushButton,
    QStyle,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from db.session import get_session
from db.store import TRASH_RETENTION_DAYS, list_quotes
from services.compositor import format_date, format_money
from services.context import SessionContext
from services.errors import PersistenceError
from services.trash import delete_permanently, purge_expired, restore
from ui.app_events import app_events
from ui.i18n import t, tu
from ui.numeric_delegate import NumericAlignDelegate


class TrashView(QWidget):
    COL_ID = 0
    COL_NUMBER = 1
    COL_CUSTOMER = 2
    COL_DELETED = 3
    COL_TOTAL = 4

    def __init__(self, ctx: SessionContext) -> None:
        super().__init__()
        self.ctx = ctx

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)

        self.lbl_hint = QLabel(t("trash_hint", days=TRASH_RETENTION_DAYS))
        self.lbl_hint.setWordWrap(True)
        layout.addWidget(self.lbl_hint)

        row = QHBoxLayout()
        row.setSpacing(8)
        self.btn_restore = QPushButton(tu("restore"))
        self.btn_restore.setIcon(self.style().standardIcon(QStyle.SP_ArrowBack))
        self.btn_restore.clicked.connect(self._restore)
        self.btn_delete = QPushButton(tu("delete_permanently"))
        self.btn_delete.setIcon(self.style().standardIcon(QStyle.SP_TrashIcon))
        self.btn_delete.clicked.connect(self._delete)
        row.addWidget(self.btn_restore)
        row.addWidget(self.btn_delete)
        row.addStretch(1)
        layout.addLayout(row)

        self.model = QStandardItemModel(0, 5, self)
        self._set_table_headers()
        table = QTableView()
        table.setModel(self.model)
        table.setItemDelegate(NumericAlignDelegate(table))
        table.setAlternatingRowColors(True)
        table.setSelectionBehavior(QTableView.SelectRows)
        table.setSelectionMode(QTableView.SingleSelection)
        table.setEditTriggers(QTableView.NoEditTriggers)
        header = table.horizontalHeader()
        header.setStretchLastSection(True)
        header.setSectionResizeMode(self.COL_CUSTOMER, QHeaderView.Stretch)
        table.verticalHeader().setVisible(False)
        table.setColumnHidden(self.COL_ID, True)
        table.selectionModel().selectionChanged.connect(self._update_buttons)
        self.table = table
        layout.addWidget(table, 1)

        self._load_quotes()
        app_events.language_changed.connect(self._reload_texts)
        app_events.quotes_changed.connect(self._load_quotes)

    def showEvent(self, event) -> None:
        super().showEvent(event)
        try:
            purged = purge_expired(self.ctx)
        except PersistenceError as exc:
            QMessageBox.critical(self, t("error"), str(exc))
            return
        if purged:
            window = self.window()
            if window is not None and hasattr(window, "statusBar"):
                window.statusBar().showMessage(t("purged", count=purged), 5000)
        self._load_quotes()

    def _load_quotes(self) -> None:
        self.model.setRowCount(0)
        with get_session() as session:
            for quote in list_quotes(session, self.ctx.user_id, trashed=True):
                total = QStandardItem(format_money(quote.total))
                total.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                deleted = quote.deleted_at.date() if quote.deleted_at else None
                self.model.appendRow(
                    [
                        QStandardItem(str(quote.id)),
                        QStandardItem(quote.number or ""),
                        QStandardItem(quote.customer_name or ""),
                        QStandardItem(format_date(deleted)),
                        total,
                    ]
                )
        self._update_buttons()

    def _selected(self) -> tuple[int, str] | None:
        indexes = self.table.selectionModel().selectedRows()
        if not indexes:
            return None
        row = indexes[0].row()
        return int(self.model.item(row, self.COL_ID).text()), self.model.item(row, self.COL_NUMBER).text()

    def _update_buttons(self) -> None:
        enabled = self._selected() is not None
        self.btn_restore.setEnabled(enabled)
        self.btn_delete.setEnabled(enabled)

    def _restore(self) -> None:
        selected = self._selected()
        if selected is None:
            return
        try:
            restore(self.ctx, selected[0])
        except (LookupError, PersistenceError) as exc:
            QMessageBox.critical(self, t("error"), str(exc))
            return
        app_events.quotes_changed.emit()

    def _delete(self) -> None:
        selected = self._selected()
        if selected is None:
            return
        quote_id, number = selected
        confirm = QMessageBox.question(
            self,
            t("delete_permanently"),
            t("confirm_delete_permanently", number=number),
            QMessageBox.Yes | QMessageBox.No,
        )
        if confirm != QMessageBox.Yes:
            return
        try:
            delete_permanently(self.ctx, quote_id)
        except (LookupError, PersistenceError) as exc:
            QMessageBox.critical(self, t("error"), str(exc))
            return
        app_events.quotes_changed.emit()

    def _set_table_headers(self) -> None:
        self.model.setHorizontalHeaderLabels(["ID", t("number"), t("customer"), t("deleted_at"), t("total")])

    def _reload_texts(self, _lang: str) -> None:
        self.lbl_hint.setText(t("trash_hint", days=TRASH_RETENTION_DAYS))
        self.btn_restore.setText(tu("restore"))
        self.btn_delete.setText(tu("delete_permanently"))
        self._set_table_headers()
