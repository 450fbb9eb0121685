from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from services.images import clean_image, decode_data_url, encode_image_file, resize_slots
from ui.i18n import t


THUMB_HEIGHT = 64


class ImageSlot(QWidget):
    """One image field: a thumbnail, a file picker and a clear button.

    The value is an inline ``data:`` URL or an external URL, or ``""``.
    """

    changed = Signal()

    def __init__(self, value: str | None = "", parent: QWidget | None = None, allow_url: bool = False) -> None:
        super().__init__(parent)
        self._value = value or ""

        row = QHBoxLayout(self)
        row.setContentsMargins(0, 0, 0, 0)
        row.setSpacing(8)

        self.lbl_thumb = QLabel()
        self.lbl_thumb.setFixedSize(THUMB_HEIGHT * 2, THUMB_HEIGHT)
        self.lbl_thumb.setAlignment(Qt.AlignCenter)
        self.lbl_thumb.setObjectName("ImageThumb")
        row.addWidget(self.lbl_thumb)

        self.ed_url: QLineEdit | None = None
        if allow_url:
            self.ed_url = QLineEdit()
            self.ed_url.setPlaceholderText("https://...")
            self.ed_url.editingFinished.connect(self._on_url_edited)
            row.addWidget(self.ed_url, 1)

        self.btn_browse = QPushButton(t("browse"))
        self.btn_browse.clicked.connect(self._browse)
        self.btn_clear = QPushButton(t("clear"))
        self.btn_clear.clicked.connect(lambda: self.set_value(""))
        row.addWidget(self.btn_browse)
        row.addWidget(self.btn_clear)
        if not allow_url:
            row.addStretch(1)

        self._refresh()

    def value(self) -> str:
        return self._value

    def set_value(self, value: str | None, notify: bool = True) -> None:
        value = value or ""
        if value == self._value:
            return
        self._value = value
        self._refresh()
        if notify:
            self.changed.emit()

    def _browse(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, t("select_image"), "", t("image_files"))
        if not path:
            return
        try:
            encoded = encode_image_file(Path(path))
        except (OSError, ValueError):
            QMessageBox.warning(self, t("warning"), t("invalid_image"))
            return
        self.set_value(encoded)

    def _on_url_edited(self) -> None:
        if self.ed_url is None:
            return
        self.set_value(self.ed_url.text().strip())

    def _refresh(self) -> None:
        if self.ed_url is not None:
            self.ed_url.blockSignals(True)
            self.ed_url.setText("" if self._value.startswith("data:") else self._value)
            self.ed_url.blockSignals(False)
        self.btn_clear.setEnabled(bool(self._value))
        data = decode_data_url(self._value) if self._value else None
        if data is None:
            self.lbl_thumb.clear()
            self.lbl_thumb.setText("URL" if clean_image(self._value) else "-")
            return
        pix = QPixmap()
        if not pix.loadFromData(data):
            self.lbl_thumb.setText("?")
            return
        self.lbl_thumb.setPixmap(
            pix.scaled(self.lbl_thumb.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        )


class ImageSlotsWidget(QWidget):
    """A variable number of image slots driven by a count spinner."""

    changed = Signal()

    def __init__(self, values: list[str] | None = None, parent: QWidget | None = None, maximum: int = 6) -> None:
        super().__init__(parent)
        self._slots: list[ImageSlot] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)

        count_row = QHBoxLayout()
        self.lbl_count = QLabel(t("image_count"))
        self.sp_count = QSpinBox()
        self.sp_count.setRange(0, maximum)
        self.sp_count.valueChanged.connect(self._on_count_changed)
        count_row.addWidget(self.lbl_count)
        count_row.addWidget(self.sp_count)
        count_row.addStretch(1)
        layout.addLayout(count_row)

        self._slots_box = QVBoxLayout()
        self._slots_box.setSpacing(4)
        layout.addLayout(self._slots_box)

        self.set_values(values or [])

    def values(self) -> list[str]:
        return [slot.value() for slot in self._slots]

    def set_values(self, values: list[str]) -> None:
        self._rebuild(list(values))
        self.sp_count.blockSignals(True)
        self.sp_count.setValue(len(self._slots))
        self.sp_count.blockSignals(False)

    def _on_count_changed(self, count: int) -> None:
        self._rebuild(resize_slots(self.values(), count, ""))
        self.changed.emit()

    def _rebuild(self, values: list[str]) -> None:
        for slot in self._slots:
            self._slots_box.removeWidget(slot)
            slot.deleteLater()
        self._slots = []
        for value in values:
            slot = ImageSlot(value, self)
            slot.changed.connect(self.changed)
            self._slots_box.addWidget(slot)
            self._slots.append(slot)
