import logging
import sys

from PySide6.QtWidgets import QApplication, QDialog, QMessageBox
from PySide6.QtCore import QLocale
from PySide6.QtGui import QIcon

from paths import ensure_portable_dirs, get_assets_dir
from settings import AppSettings
from logger import setup_file_logger
from db import init_db
from services.auth import ensure_default_user
from ui.i18n import set_language, t
from ui.login_dialog import LoginDialog
from ui.main_window import MainWindow


logger = logging.getLogger("preventivi.app")


def _apply_qss(app: QApplication) -> None:
    qss_path = get_assets_dir() / "styles.qss"
    if qss_path.exists():
        current = app.styleSheet()
        qss = qss_path.read_text(encoding="utf-8")
        app.setStyleSheet(f"{current}\n{qss}")


def _apply_material_theme(app: QApplication, settings: AppSettings) -> None:
    try:
        from qt_material import apply_stylesheet  # type: ignore
    except ImportError:
        return

    theme = settings.get("theme", "light")
    if theme == "dark":
        xml = "dark_blue.xml"
    else:
        xml = "light_blue.xml"

    apply_stylesheet(app, theme=xml)


def main() -> None:
    app = QApplication(sys.argv)

    dirs = ensure_portable_dirs()
    settings = AppSettings.load()
    setup_file_logger(dirs["logs"], settings.get("log_level", "INFO"))

    lang = settings.get("language", "it")
    set_language(lang)
    if lang == "en":
        QLocale.setDefault(QLocale(QLocale.English, QLocale.UnitedKingdom))
    else:
        QLocale.setDefault(QLocale(QLocale.Italian, QLocale.Italy))

    try:
        init_db()
        ensure_default_user()
    except Exception as exc:
        logger.exception("Database initialisation failed")
        QMessageBox.critical(None, t("error"), str(exc))
        sys.exit(1)

    _apply_material_theme(app, settings)
    _apply_qss(app)

    icon_path = get_assets_dir() / "app_icon.png"
    if icon_path.exists():
        app.setWindowIcon(QIcon(str(icon_path)))

    app.setQuitOnLastWindowClosed(False)
    while True:
        login = LoginDialog()
        if login.exec() != QDialog.Accepted or login.ctx is None:
            break
        window = MainWindow(login.ctx)
        window.show()
        app.exec()
        if not window.logout_requested:
            break
        logger.info("User %s logged out", login.ctx.username)

    sys.exit(0)


if __name__ == "__main__":
    main()
