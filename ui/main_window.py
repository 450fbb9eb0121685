from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtGui import QIcon, QPainter, QPen, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QStyle,
    QVBoxLayout,
    QWidget,
)

from services.context import SessionContext
from settings import AppSettings
from ui.app_events import app_events
from ui.company_settings_view import CompanySettingsView
from ui.dashboard_view import DashboardView
from ui.i18n import t, tu
from ui.quotes_view import QuotesView
from ui.trash_view import TrashView


SIDEBAR_WIDTH = 220
SIDEBAR_COLLAPSED_WIDTH = 60


@dataclass(frozen=True)
class NavItem:
    key: str
    icon: QStyle.StandardPixmap
    factory: Callable[[SessionContext], QWidget]


NAV_ITEMS = (
    NavItem("dashboard", QStyle.SP_DesktopIcon, DashboardView),
    NavItem("quotes", QStyle.SP_FileDialogListView, QuotesView),
    NavItem("trash", QStyle.SP_TrashIcon, TrashView),
    NavItem("settings", QStyle.SP_FileDialogDetailedView, CompanySettingsView),
)


class MainWindow(QMainWindow):
    """Sidebar navigation over the views of one logged-in session."""

    def __init__(self, ctx: SessionContext) -> None:
        super().__init__()
        self.ctx = ctx
        self.logout_requested = False
        self._collapsed = False
        self.setMinimumSize(1000, 650)
        self.setProperty("theme", AppSettings.load().get("theme", "light"))

        self._stack = QStackedWidget()
        self._stack.setObjectName("MainStack")
        for item in NAV_ITEMS:
            page = item.factory(ctx)
            page.setObjectName(f"Page_{item.key}")
            self._stack.addWidget(page)

        central = QWidget()
        root = QHBoxLayout(central)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)
        root.addWidget(self._build_sidebar())

        content = QVBoxLayout()
        content.setContentsMargins(0, 0, 0, 0)
        content.setSpacing(0)
        content.addWidget(self._build_header())
        content.addWidget(self._stack, 1)
        root.addLayout(content, 1)
        self.setCentralWidget(central)

        self._nav.currentRowChanged.connect(self._select)
        self._nav.setCurrentRow(0)
        self._reload_texts()
        app_events.language_changed.connect(self._reload_texts)

    def _build_sidebar(self) -> QWidget:
        self._sidebar = QFrame()
        self._sidebar.setObjectName("Sidebar")
        self._sidebar.setFixedWidth(SIDEBAR_WIDTH)
        layout = QVBoxLayout(self._sidebar)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        top = QHBoxLayout()
        top.setSpacing(10)
        self._btn_toggle = QPushButton()
        self._btn_toggle.setObjectName("SidebarToggle")
        self._btn_toggle.setCursor(Qt.PointingHandCursor)
        self._btn_toggle.setFixedSize(32, 32)
        self._btn_toggle.setIcon(self._menu_icon())
        self._btn_toggle.clicked.connect(self._toggle_sidebar)
        self._title = QLabel()
        self._title.setObjectName("SidebarTitle")
        self._title.setMinimumHeight(48)
        top.addWidget(self._btn_toggle)
        top.addWidget(self._title, 1)
        layout.addLayout(top)

        self._nav = QListWidget()
        self._nav.setObjectName("NavList")
        self._nav.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self._nav.setSpacing(2)
        for item in NAV_ITEMS:
            entry = QListWidgetItem(self.style().standardIcon(item.icon), "")
            entry.setData(Qt.UserRole, item.key)
            self._nav.addItem(entry)
        layout.addWidget(self._nav, 1)

        self._lbl_user = QLabel(self.ctx.username)
        self._lbl_user.setObjectName("SidebarCredits")
        self._btn_logout = QPushButton()
        self._btn_logout.setIcon(self.style().standardIcon(QStyle.SP_DialogCloseButton))
        self._btn_logout.clicked.connect(self._logout)
        layout.addWidget(self._lbl_user)
        layout.addWidget(self._btn_logout)
        return self._sidebar

    def _build_header(self) -> QWidget:
        bar = QFrame()
        bar.setObjectName("TopBar")
        layout = QVBoxLayout(bar)
        layout.setContentsMargins(18, 10, 18, 8)
        layout.setSpacing(2)
        self._section_title = QLabel()
        self._section_title.setObjectName("TopBarTitle")
        self._section_title.setStyleSheet("font-weight: 800; font-size: 24px;")
        self._section_subtitle = QLabel()
        self._section_subtitle.setObjectName("TopBarSubtitle")
        layout.addWidget(self._section_title)
        layout.addWidget(self._section_subtitle)
        return bar

    def _menu_icon(self) -> QIcon:
        pix = QPixmap(18, 18)
        pix.fill(Qt.transparent)
        painter = QPainter(pix)
        pen = QPen(self.palette().color(self.foregroundRole()))
        pen.setWidth(2)
        pen.setCapStyle(Qt.RoundCap)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.setPen(pen)
        for y in (4, 9, 14):
            painter.drawLine(3, y, 15, y)
        painter.end()
        return QIcon(pix)

    def _toggle_sidebar(self) -> None:
        self._collapsed = not self._collapsed
        self._sidebar.setFixedWidth(SIDEBAR_COLLAPSED_WIDTH if self._collapsed else SIDEBAR_WIDTH)
        self._title.setVisible(not self._collapsed)
        self._lbl_user.setVisible(not self._collapsed)
        self._reload_texts()

    def _select(self, row: int) -> None:
        if row < 0:
            return
        self._stack.setCurrentIndex(row)
        key = NAV_ITEMS[row].key
        self._section_title.setText(tu(f"section_{key}"))
        self._section_subtitle.setText(t(f"subtitle_{key}"))

    def _reload_texts(self, _lang: str | None = None) -> None:
        self.setWindowTitle(t("app_title"))
        self._title.setText(tu("app_title"))
        self._btn_toggle.setToolTip(t("menu"))
        for row, item in enumerate(NAV_ITEMS):
            self._nav.item(row).setText("" if self._collapsed else t(item.key))
            self._nav.item(row).setToolTip(t(item.key))
        self._btn_logout.setText("" if self._collapsed else t("logout"))
        self.statusBar().showMessage(t("logged_in_as", user=self.ctx.username))
        self._select(self._nav.currentRow())

    def _logout(self) -> None:
        self.logout_requested = True
        self.close()

    def closeEvent(self, event) -> None:
        super().closeEvent(event)
        QApplication.quit()
