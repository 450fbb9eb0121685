from __future__ import annotations

import logging

from PySide6.QtCore import Qt
from PySide6.QtGui import QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QStyle,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from db.session import get_session
from db.store import list_quotes
from services.compositor import format_date, format_money
from services.context import SessionContext
from services.errors import PersistenceError
from services.exporter import build_renderable, export_quote_pdf, export_quote_xlsx, quote_pdf_bytes
from services.trash import move_to_trash
from ui.app_events import app_events
from ui.i18n import t, tu
from ui.numeric_delegate import NumericAlignDelegate
from ui.preview import PdfPreviewDialog
from ui.quote_editor import QuoteEditor


logger = logging.getLogger("preventivi.ui.quotes")


class QuotesView(QWidget):
    COL_ID = 0
    COL_NUMBER = 1
    COL_CUSTOMER = 2
    COL_DATE = 3
    COL_TOTAL = 4

    def __init__(self, ctx: SessionContext) -> None:
        super().__init__()
        self.ctx = ctx

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)

        self.ed_search = QLineEdit()
        self.ed_search.setPlaceholderText(t("search_quotes"))
        self.ed_search.setClearButtonEnabled(True)
        self.ed_search.textChanged.connect(self._load_quotes)
        layout.addWidget(self.ed_search)

        layout.addLayout(self._build_actions())
        layout.addWidget(self._build_table(), 1)

        self.lbl_count = QLabel("")
        layout.addWidget(self.lbl_count)

        self._load_quotes()
        app_events.language_changed.connect(self._reload_texts)
        app_events.quotes_changed.connect(self._load_quotes)

    def _build_actions(self) -> QHBoxLayout:
        row = QHBoxLayout()
        row.setSpacing(8)

        self.btn_new = QPushButton(tu("new"))
        self.btn_new.setIcon(self.style().standardIcon(QStyle.SP_FileIcon))
        self.btn_new.clicked.connect(self._new_quote)

        self.btn_edit = QPushButton(tu("edit"))
        self.btn_edit.setIcon(self.style().standardIcon(QStyle.SP_FileDialogDetailedView))
        self.btn_edit.clicked.connect(self._edit_quote)

        self.btn_trash = QPushButton(tu("move_to_trash"))
        self.btn_trash.setIcon(self.style().standardIcon(QStyle.SP_TrashIcon))
        self.btn_trash.clicked.connect(self._trash_quote)

        self.btn_preview = QPushButton(tu("preview"))
        self.btn_preview.setIcon(self.style().standardIcon(QStyle.SP_FileDialogContentsView))
        self.btn_preview.clicked.connect(self._preview)

        self.btn_export_pdf = QPushButton(tu("export_pdf"))
        self.btn_export_pdf.setIcon(self.style().standardIcon(QStyle.SP_DialogSaveButton))
        self.btn_export_pdf.clicked.connect(self._export_pdf)
        self.btn_export_xlsx = QPushButton(tu("export_xlsx"))
        self.btn_export_xlsx.setIcon(self.style().standardIcon(QStyle.SP_DialogSaveButton))
        self.btn_export_xlsx.clicked.connect(self._export_xlsx)

        self._selection_buttons = [
            self.btn_edit,
            self.btn_trash,
            self.btn_preview,
            self.btn_export_pdf,
            self.btn_export_xlsx,
        ]
        for btn in self._selection_buttons:
            btn.setEnabled(False)

        row.addWidget(self.btn_new)
        row.addWidget(self.btn_edit)
        row.addWidget(self.btn_trash)
        row.addWidget(self.btn_preview)
        row.addWidget(self.btn_export_pdf)
        row.addWidget(self.btn_export_xlsx)
        row.addStretch(1)
        return row

    def _build_table(self) -> QTableView:
        self.model = QStandardItemModel(0, 5, self)
        self._set_table_headers()

        table = QTableView()
        table.setObjectName("QuotesTable")
        table.setModel(self.model)
        table.setItemDelegate(NumericAlignDelegate(table))
        table.setSortingEnabled(True)
        table.setAlternatingRowColors(True)
        table.setSelectionBehavior(QTableView.SelectRows)
        table.setSelectionMode(QTableView.SingleSelection)
        table.setEditTriggers(QTableView.NoEditTriggers)
        header = table.horizontalHeader()
        header.setStretchLastSection(True)
        header.setSectionResizeMode(self.COL_NUMBER, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(self.COL_CUSTOMER, QHeaderView.Stretch)
        header.setSectionResizeMode(self.COL_DATE, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(self.COL_TOTAL, QHeaderView.ResizeToContents)
        table.verticalHeader().setVisible(False)
        table.setColumnHidden(self.COL_ID, True)
        table.selectionModel().selectionChanged.connect(self._update_buttons)
        table.doubleClicked.connect(self._edit_quote)

        self.table = table
        return table

    def _load_quotes(self) -> None:
        self.model.setRowCount(0)
        with get_session() as session:
            quotes = list_quotes(session, self.ctx.user_id, self.ed_search.text())
            for quote in quotes:
                total = QStandardItem(format_money(quote.total))
                total.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                self.model.appendRow(
                    [
                        QStandardItem(str(quote.id)),
                        QStandardItem(quote.number or ""),
                        QStandardItem(quote.customer_name or ""),
                        QStandardItem(format_date(quote.date)),
                        total,
                    ]
                )
        self.lbl_count.setText(t("quote_count", count=self.model.rowCount()))
        self._update_buttons()

    def _selected_quote_id(self) -> int | None:
        indexes = self.table.selectionModel().selectedRows()
        if not indexes:
            return None
        value = self.model.item(indexes[0].row(), self.COL_ID).text()
        return int(value)

    def _selected_number(self) -> str:
        indexes = self.table.selectionModel().selectedRows()
        if not indexes:
            return ""
        return self.model.item(indexes[0].row(), self.COL_NUMBER).text()

    def _update_buttons(self) -> None:
        enabled = self._selected_quote_id() is not None
        for btn in self._selection_buttons:
            btn.setEnabled(enabled)

    def _new_quote(self) -> None:
        editor = QuoteEditor(self.ctx, self)
        if editor.exec() == QDialog.Accepted:
            app_events.quotes_changed.emit()

    def _edit_quote(self) -> None:
        quote_id = self._selected_quote_id()
        if quote_id is None:
            QMessageBox.information(self, t("quotes"), t("select_quote"))
            return
        editor = QuoteEditor(self.ctx, self, quote_id=quote_id)
        if editor.exec() == QDialog.Accepted:
            app_events.quotes_changed.emit()

    def _trash_quote(self) -> None:
        quote_id = self._selected_quote_id()
        if quote_id is None:
            QMessageBox.information(self, t("quotes"), t("select_quote"))
            return
        confirm = QMessageBox.question(
            self,
            t("move_to_trash"),
            t("confirm_trash", number=self._selected_number()),
            QMessageBox.Yes | QMessageBox.No,
        )
        if confirm != QMessageBox.Yes:
            return
        try:
            move_to_trash(self.ctx, quote_id)
        except (LookupError, PersistenceError) as exc:
            QMessageBox.critical(self, t("error"), str(exc))
            return
        app_events.quotes_changed.emit()

    def _preview(self) -> None:
        quote_id = self._selected_quote_id()
        if quote_id is None:
            QMessageBox.information(self, t("quotes"), t("select_quote"))
            return
        try:
            data = quote_pdf_bytes(build_renderable(self.ctx, quote_id))
        except Exception as exc:
            logger.exception("Preview of quote %s failed", quote_id)
            QMessageBox.critical(self, t("error"), t("export_failed", error=exc))
            return
        PdfPreviewDialog(data, self._selected_number(), self).exec()

    def _export_pdf(self) -> None:
        quote_id = self._selected_quote_id()
        if quote_id is None:
            QMessageBox.information(self, t("quotes"), t("select_quote"))
            return
        try:
            path = export_quote_pdf(self.ctx, quote_id)
        except Exception as exc:
            logger.exception("PDF export of quote %s failed", quote_id)
            QMessageBox.critical(self, t("error"), t("export_failed", error=exc))
            return
        QMessageBox.information(self, t("export_pdf"), t("exported_to", path=path))

    def _export_xlsx(self) -> None:
        quote_id = self._selected_quote_id()
        if quote_id is None:
            QMessageBox.information(self, t("quotes"), t("select_quote"))
            return
        try:
            path = export_quote_xlsx(self.ctx, quote_id)
        except Exception as exc:
            logger.exception("Excel export of quote %s failed", quote_id)
            QMessageBox.critical(self, t("error"), t("export_failed", error=exc))
            return
        QMessageBox.information(self, t("export_xlsx"), t("exported_to", path=path))

    def _set_table_headers(self) -> None:
        self.model.setHorizontalHeaderLabels(["ID", t("number"), t("customer"), t("date"), t("total")])

    def _reload_texts(self, _lang: str) -> None:
        self.ed_search.setPlaceholderText(t("search_quotes"))
        self.btn_new.setText(tu("new"))
        self.btn_edit.setText(tu("edit"))
        self.btn_trash.setText(tu("move_to_trash"))
        self.btn_preview.setText(tu("preview"))
        self.btn_export_pdf.setText(tu("export_pdf"))
        self.btn_export_xlsx.setText(tu("export_xlsx"))
        self._set_table_headers()
        self._load_quotes()
