from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from services.auth import authenticate
from services.context import SessionContext
from settings import AppSettings
from ui.i18n import t, tu


class LoginDialog(QDialog):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(f"{t('app_title')} - {t('login')}")
        self.setMinimumWidth(360)
        self.ctx: SessionContext | None = None
        self._settings = AppSettings.load()

        root = QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        title = QLabel(tu("app_title"))
        title.setObjectName("PageTitle")
        title.setAlignment(Qt.AlignCenter)
        root.addWidget(title)

        form = QFormLayout()
        form.setLabelAlignment(Qt.AlignRight)
        form.setHorizontalSpacing(12)
        form.setVerticalSpacing(8)
        self.ed_username = QLineEdit(str(self._settings.get("last_username", "") or ""))
        self.ed_password = QLineEdit()
        self.ed_password.setEchoMode(QLineEdit.Password)
        form.addRow(t("username"), self.ed_username)
        form.addRow(t("password"), self.ed_password)
        root.addLayout(form)

        self.lbl_error = QLabel("")
        self.lbl_error.setObjectName("ErrorLabel")
        self.lbl_error.setStyleSheet("color: #b91c1c;")
        self.lbl_error.setVisible(False)
        root.addWidget(self.lbl_error)

        actions = QHBoxLayout()
        actions.addStretch(1)
        btn_cancel = QPushButton(tu("cancel"))
        btn_ok = QPushButton(tu("login"))
        btn_ok.setDefault(True)
        btn_cancel.clicked.connect(self.reject)
        btn_ok.clicked.connect(self._login)
        actions.addWidget(btn_cancel)
        actions.addWidget(btn_ok)
        root.addLayout(actions)

        if self.ed_username.text():
            self.ed_password.setFocus()

    def _login(self) -> None:
        ctx = authenticate(self.ed_username.text(), self.ed_password.text())
        if ctx is None:
            self.lbl_error.setText(t("login_failed"))
            self.lbl_error.setVisible(True)
            self.ed_password.selectAll()
            self.ed_password.setFocus()
            return
        self._settings.set("last_username", ctx.username)
        self._settings.save()
        self.ctx = ctx
        self.accept()
