from __future__ import annotations

from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtPdf import QPdfDocument
from PySide6.QtPdfWidgets import QPdfView
from PySide6.QtWidgets import QDialog, QHBoxLayout, QPushButton, QVBoxLayout, QWidget

from ui.i18n import t, tu


class PdfPreviewView(QPdfView):
    """Shows an in-memory PDF; the document and buffer live with the view."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._document = QPdfDocument(self)
        self._buffer: QBuffer | None = None
        self.setDocument(self._document)
        self.setPageMode(QPdfView.PageMode.MultiPage)
        self.setZoomMode(QPdfView.ZoomMode.FitToWidth)

    def load_bytes(self, data: bytes) -> None:
        self._document.close()
        if self._buffer is not None:
            self._buffer.close()
            self._buffer.deleteLater()
        buffer = QBuffer(self)
        buffer.setData(QByteArray(data))
        buffer.open(QIODevice.ReadOnly)
        self._buffer = buffer
        self._document.load(buffer)

    def page_count(self) -> int:
        return self._document.pageCount()


class PdfPreviewDialog(QDialog):
    def __init__(self, data: bytes, number: str = "", parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(f"{t('preview')} {number}".strip())
        self.resize(820, 960)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        self.view = PdfPreviewView(self)
        self.view.load_bytes(data)
        layout.addWidget(self.view, 1)

        actions = QHBoxLayout()
        actions.addStretch(1)
        btn_close = QPushButton(tu("close"))
        btn_close.clicked.connect(self.accept)
        actions.addWidget(btn_close)
        layout.addLayout(actions)
