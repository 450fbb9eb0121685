from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QDialog,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QStyle,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from db.session import get_session
from db.store import dashboard_stats
from services.compositor import format_date, format_money
from services.context import SessionContext
from ui.app_events import app_events
from ui.i18n import t, tu
from ui.numeric_delegate import NumericAlignDelegate
from ui.quote_editor import QuoteEditor


class StatCard(QFrame):
    def __init__(self, title: str) -> None:
        super().__init__()
        self.setObjectName("StatCard")
        self.setFrameShape(QFrame.StyledPanel)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)
        self.lbl_title = QLabel(title)
        self.lbl_value = QLabel("0")
        self.lbl_value.setStyleSheet("font-weight: 700; font-size: 26px;")
        layout.addWidget(self.lbl_title)
        layout.addWidget(self.lbl_value)


class DashboardView(QWidget):
    """Quote count, potential revenue, catalog size and latest quotes."""

    def __init__(self, ctx: SessionContext) -> None:
        super().__init__()
        self.ctx = ctx

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        top = QHBoxLayout()
        self.lbl_welcome = QLabel()
        self.lbl_welcome.setStyleSheet("font-weight: 700; font-size: 18px;")
        self.btn_new = QPushButton(tu("new_quote"))
        self.btn_new.setIcon(self.style().standardIcon(QStyle.SP_FileIcon))
        self.btn_new.clicked.connect(self._new_quote)
        top.addWidget(self.lbl_welcome, 1)
        top.addWidget(self.btn_new)
        layout.addLayout(top)

        cards = QGridLayout()
        cards.setSpacing(12)
        self.card_quotes = StatCard(t("stat_quotes"))
        self.card_value = StatCard(t("stat_value"))
        self.card_articles = StatCard(t("stat_articles"))
        for col, card in enumerate((self.card_quotes, self.card_value, self.card_articles)):
            cards.addWidget(card, 0, col)
        layout.addLayout(cards)

        self.lbl_recent = QLabel(tu("recent_quotes"))
        self.lbl_recent.setStyleSheet("font-weight: 700;")
        layout.addWidget(self.lbl_recent)

        self.model = QStandardItemModel(0, 4, self)
        self._set_table_headers()
        table = QTableView()
        table.setModel(self.model)
        table.setItemDelegate(NumericAlignDelegate(table))
        table.setAlternatingRowColors(True)
        table.setSelectionBehavior(QTableView.SelectRows)
        table.setEditTriggers(QTableView.NoEditTriggers)
        table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        table.verticalHeader().setVisible(False)
        self.table = table
        layout.addWidget(table, 1)

        self._reload_texts()
        app_events.language_changed.connect(self._reload_texts)
        app_events.quotes_changed.connect(self._load_stats)

    def showEvent(self, event) -> None:
        super().showEvent(event)
        self._load_stats()

    def _load_stats(self) -> None:
        with get_session() as session:
            stats = dashboard_stats(session, self.ctx.user_id)
        self.card_quotes.lbl_value.setText(str(stats.quotes_count))
        self.card_value.lbl_value.setText(format_money(stats.total_value))
        self.card_articles.lbl_value.setText(str(stats.articles_count))

        self.model.setRowCount(0)
        for quote in stats.recent:
            total = QStandardItem(format_money(quote.total))
            total.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            self.model.appendRow(
                [
                    QStandardItem(quote.number),
                    QStandardItem(quote.customer_name),
                    QStandardItem(format_date(quote.date)),
                    total,
                ]
            )

    def _new_quote(self) -> None:
        editor = QuoteEditor(self.ctx, parent=self)
        if editor.exec() == QDialog.Accepted:
            app_events.quotes_changed.emit()

    def _set_table_headers(self) -> None:
        self.model.setHorizontalHeaderLabels([t("number"), t("customer"), t("date"), t("total")])

    def _reload_texts(self, _lang: str | None = None) -> None:
        self.lbl_welcome.setText(t("welcome", user=self.ctx.username))
        self.btn_new.setText(tu("new_quote"))
        self.card_quotes.lbl_title.setText(t("stat_quotes"))
        self.card_value.lbl_title.setText(t("stat_value"))
        self.card_articles.lbl_title.setText(t("stat_articles"))
        self.lbl_recent.setText(tu("recent_quotes"))
        self._set_table_headers()
        self._load_stats()
