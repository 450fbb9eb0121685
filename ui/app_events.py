from __future__ import annotations

from PySide6.QtCore import QObject, Signal


class AppEvents(QObject):
    language_changed = Signal(str)
    quotes_changed = Signal()
    settings_changed = Signal()


app_events = AppEvents()
