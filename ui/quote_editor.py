from __future__ import annotations

import logging
from datetime import date

from PySide6.QtCore import QDate, Qt, QTimer, Signal
from PySide6.QtGui import QColor, QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDateEdit,
    QDialog,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QListWidget,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QTableView,
    QTableWidget,
    QTableWidgetItem,
    QTabWidget,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from services.compositor import format_money, format_number
from services.context import SessionContext
from services.document_model import build_document, caption_from_line, inherit_defaults, resolve_display_number
from services.errors import PersistenceError, QuoteValidationError, ReferenceDataError
from services.exporter import quote_pdf_bytes
from services.images import to_height
from services.leasing import (
    KIND_LABELS,
    PERIODICITY_LABELS,
    activate_leasing,
    deactivate_leasing,
    update_leasing,
)
from services.numbering import save_quote
from services.quote_model import (
    ArticleData,
    Attachment,
    AttachmentLayout,
    CustomerData,
    CustomerSnapshot,
    IMAGE_POSITIONS,
    ProductImage,
    QuoteData,
    SettingsData,
)
from services.reference_data import ReferenceData, ReferenceDataLoader
from services.totals import add_line, apply_article, move_line, remove_line, to_amount, update_line
from settings import AppSettings
from ui.i18n import t, tu
from ui.image_slots import ImageSlot, ImageSlotsWidget
from ui.numeric_delegate import NumericAlignDelegate
from ui.preview import PdfPreviewView


logger = logging.getLogger("preventivi.ui.editor")

PREVIEW_DELAY_MS = 600
_NO_DATE = QDate(2000, 1, 1)

COL_CODE = 0
COL_DESCRIPTION = 1
COL_QUANTITY = 2
COL_PRICE = 3
COL_VAT = 4
COL_TOTAL = 5
_LINE_FIELDS = {
    COL_CODE: "code",
    COL_DESCRIPTION: "description",
    COL_QUANTITY: "quantity",
    COL_PRICE: "unit_price",
    COL_VAT: "vat_rate",
}


class ArticlePicker(QDialog):
    def __init__(self, articles: list[ArticleData], parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle(t("pick_article"))
        self.setMinimumWidth(600)
        self._articles = articles

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        self.ed_search = QLineEdit()
        self.ed_search.setPlaceholderText(t("search"))
        self.ed_search.textChanged.connect(self._apply_filter)
        layout.addWidget(self.ed_search)

        self.model = QStandardItemModel(0, 4, self)
        self.model.setHorizontalHeaderLabels([t("code"), t("description"), t("unit_price"), t("vat_rate")])
        for article in articles:
            price = QStandardItem(format_money(article.unit_price))
            price.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            vat = QStandardItem(format_number(article.vat))
            vat.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            self.model.appendRow([QStandardItem(article.code), QStandardItem(article.description), price, vat])

        self.table = QTableView()
        self.table.setModel(self.model)
        self.table.setAlternatingRowColors(True)
        self.table.setSelectionBehavior(QTableView.SelectRows)
        self.table.setSelectionMode(QTableView.SingleSelection)
        self.table.setEditTriggers(QTableView.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        self.table.verticalHeader().setVisible(False)
        self.table.doubleClicked.connect(self._accept_on_double_click)
        layout.addWidget(self.table, 1)

        actions = QHBoxLayout()
        actions.addStretch(1)
        btn_cancel = QPushButton(tu("cancel"))
        btn_ok = QPushButton(tu("add"))
        btn_ok.setDefault(True)
        btn_cancel.clicked.connect(self.reject)
        btn_ok.clicked.connect(self.accept)
        actions.addWidget(btn_cancel)
        actions.addWidget(btn_ok)
        layout.addLayout(actions)

    def _accept_on_double_click(self) -> None:
        if self.selected_article() is not None:
            self.accept()

    def _apply_filter(self) -> None:
        text = self.ed_search.text().strip().lower()
        for row, article in enumerate(self._articles):
            show = (not text) or (text in article.code.lower()) or (text in article.description.lower())
            self.table.setRowHidden(row, not show)

    def selected_article(self) -> ArticleData | None:
        indexes = self.table.selectionModel().selectedRows()
        if not indexes:
            return None
        return self._articles[indexes[0].row()]


class OptionalDateEdit(QDateEdit):
    """Date edit whose minimum date stands for "no date"."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setCalendarPopup(True)
        self.setDisplayFormat("dd/MM/yyyy")
        self.setMinimumDate(_NO_DATE)
        self.setSpecialValueText(" ")
        self.setDate(_NO_DATE)

    def value(self) -> date | None:
        current = self.date()
        return None if current == _NO_DATE else current.toPython()

    def set_value(self, value: date | None) -> None:
        self.setDate(_qdate(value) if value else _NO_DATE)


def _spin(maximum: float, decimals: int = 0, suffix: str = "") -> QDoubleSpinBox:
    box = QDoubleSpinBox()
    box.setRange(0, maximum)
    box.setDecimals(decimals)
    box.setSpecialValueText(" ")
    if suffix:
        box.setSuffix(suffix)
    return box


def _spin_value(box: QDoubleSpinBox) -> float | None:
    return to_height(box.value()) if box.value() > 0 else None


def _set_spin(box: QDoubleSpinBox, value: float | None) -> None:
    box.setValue(float(value or 0))


def _optional_number(text: str) -> float | None:
    if not text.strip():
        return None
    return to_amount(text)


def _optional_int(text: str) -> int | None:
    value = _optional_number(text)
    return int(value) if value is not None else None


def _number_text(value: float | None) -> str:
    return "" if value is None else format_number(value)


def _qdate(value: date) -> QDate:
    return QDate(value.year, value.month, value.day)


class QuoteEditor(QDialog):
    """Edit one quote; reference data is loaded in the background on open."""

    _reference_loaded = Signal(object)
    _reference_failed = Signal(object)

    def __init__(self, ctx: SessionContext, parent: QWidget | None = None, quote_id: int | None = None) -> None:
        super().__init__(parent)
        self.ctx = ctx
        self._quote_id = quote_id
        self.quote = QuoteData()
        self.settings = SettingsData()
        self.articles: list[ArticleData] = []
        self.customers: list[CustomerData] = []
        self.last_quote: QuoteData | None = None
        self._loading = True
        self._current_attachment = -1

        self.setWindowTitle(t("edit_quote") if quote_id is not None else t("new_quote"))
        self.setMinimumSize(1000, 720)

        root = QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        self.lbl_status = QLabel(t("loading"))
        root.addWidget(self.lbl_status)

        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_header(), t("tab_header"))
        self.tabs.addTab(self._build_lines(), t("tab_lines"))
        self.tabs.addTab(self._scrolled(self._build_leasing()), t("tab_leasing"))
        self.tabs.addTab(self._scrolled(self._build_sections()), t("tab_sections"))
        self.tabs.addTab(self._build_attachments(), t("tab_attachments"))
        self.tabs.addTab(self._build_preview(), t("tab_preview"))
        self.tabs.currentChanged.connect(self._on_tab_changed)
        self.tabs.setEnabled(False)
        root.addWidget(self.tabs, 1)

        root.addWidget(self._build_totals())
        root.addLayout(self._build_actions())

        self._preview_timer = QTimer(self)
        self._preview_timer.setSingleShot(True)
        self._preview_timer.setInterval(PREVIEW_DELAY_MS)
        self._preview_timer.timeout.connect(self._refresh_preview)

        self._reference_loaded.connect(self._apply_reference_data)
        self._reference_failed.connect(self._on_reference_failed)
        self._loader = ReferenceDataLoader(
            ctx,
            quote_id,
            on_loaded=self._reference_loaded.emit,
            on_failed=self._reference_failed.emit,
        )
        self._loader.start()

    # ---------------------------
    # Layout
    # ---------------------------

    def _scrolled(self, widget: QWidget) -> QScrollArea:
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(widget)
        return scroll

    def _form(self, parent: QWidget | None = None) -> QFormLayout:
        form = QFormLayout(parent)
        form.setLabelAlignment(Qt.AlignRight)
        form.setFormAlignment(Qt.AlignTop)
        form.setHorizontalSpacing(12)
        form.setVerticalSpacing(8)
        return form

    def _build_header(self) -> QWidget:
        page = QWidget()
        outer = QVBoxLayout(page)
        outer.setContentsMargins(12, 12, 12, 12)
        outer.setSpacing(8)

        header_bar = QWidget()
        header_bar.setObjectName("HeaderBar")
        header_layout = QHBoxLayout(header_bar)
        header_layout.setContentsMargins(0, 0, 0, 0)
        self.lbl_header = QLabel(t("customer"))
        self.lbl_header.setObjectName("HeaderChip")
        self.btn_header_toggle = QToolButton()
        self.btn_header_toggle.setObjectName("HeaderToggle")
        self.btn_header_toggle.setCheckable(True)
        self.btn_header_toggle.setChecked(True)
        self.btn_header_toggle.clicked.connect(self._toggle_header)
        header_layout.addWidget(self.lbl_header)
        header_layout.addStretch(1)
        header_layout.addWidget(self.btn_header_toggle)
        outer.addWidget(header_bar)

        self._header_body = QWidget()
        form = self._form(self._header_body)

        self.ed_number = QLineEdit()
        self.ed_date = QDateEdit()
        self.ed_date.setCalendarPopup(True)
        self.ed_date.setDisplayFormat("dd/MM/yyyy")
        self.ed_date.setDate(date.today())

        self.cb_customer = QComboBox()
        self.cb_customer.activated.connect(self._on_customer_picked)
        self.ed_customer_name = QLineEdit()
        self.ed_customer_address = QLineEdit()
        self.ed_customer_vat = QLineEdit()

        form.addRow(t("number"), self.ed_number)
        form.addRow(t("date"), self.ed_date)
        form.addRow(t("pick_customer"), self.cb_customer)
        form.addRow(t("customer_name"), self.ed_customer_name)
        form.addRow(t("customer_address"), self.ed_customer_address)
        form.addRow(t("customer_vat"), self.ed_customer_vat)
        outer.addWidget(self._header_body)

        options = QGroupBox(t("notes"))
        options_layout = QVBoxLayout(options)
        self.ed_notes = QPlainTextEdit()
        self.ed_notes.setMaximumHeight(120)
        self.chk_show_totals = QCheckBox(t("show_totals"))
        self.chk_show_bank = QCheckBox(t("show_bank_info"))
        options_layout.addWidget(self.ed_notes)
        options_layout.addWidget(self.chk_show_totals)
        options_layout.addWidget(self.chk_show_bank)
        outer.addWidget(options)
        outer.addStretch(1)

        for widget in (self.ed_number, self.ed_customer_name, self.ed_customer_address, self.ed_customer_vat):
            widget.textEdited.connect(self._schedule_preview)
        self.ed_date.dateChanged.connect(self._schedule_preview)
        self.ed_notes.textChanged.connect(self._schedule_preview)
        self.chk_show_totals.toggled.connect(self._schedule_preview)
        self.chk_show_bank.toggled.connect(self._schedule_preview)

        self._restore_header_state()
        return page

    def _toggle_header(self) -> None:
        expanded = self.btn_header_toggle.isChecked()
        self._apply_header_state(expanded)
        settings = AppSettings.load()
        settings.set("quote_header_expanded", bool(expanded))
        settings.save()

    def _restore_header_state(self) -> None:
        expanded = bool(AppSettings.load().get("quote_header_expanded", True))
        self.btn_header_toggle.setChecked(expanded)
        self._apply_header_state(expanded)

    def _apply_header_state(self, expanded: bool) -> None:
        self._header_body.setVisible(expanded)
        self.btn_header_toggle.setText("▾" if expanded else "▸")

    def _build_lines(self) -> QWidget:
        panel = QWidget()
        v = QVBoxLayout(panel)
        v.setContentsMargins(0, 0, 0, 0)
        v.setSpacing(8)

        actions = QHBoxLayout()
        self.btn_add_line = QPushButton(tu("add_line"))
        self.btn_add_line.clicked.connect(self._add_line)
        self.btn_add_article = QPushButton(tu("add_article"))
        self.btn_add_article.clicked.connect(self._add_from_catalog)
        self.btn_remove_line = QPushButton(tu("remove_line"))
        self.btn_remove_line.clicked.connect(self._remove_line)
        self.btn_line_up = QPushButton(t("move_up"))
        self.btn_line_up.clicked.connect(lambda: self._move_line(-1))
        self.btn_line_down = QPushButton(t("move_down"))
        self.btn_line_down.clicked.connect(lambda: self._move_line(1))
        for btn in (self.btn_add_line, self.btn_add_article, self.btn_remove_line, self.btn_line_up, self.btn_line_down):
            actions.addWidget(btn)
        actions.addStretch(1)
        v.addLayout(actions)

        self.table = QTableWidget(0, 6)
        self.table.setObjectName("QuoteLinesTable")
        self.table.setItemDelegate(NumericAlignDelegate(self.table))
        self._set_table_headers()
        self.table.setAlternatingRowColors(True)
        self.table.verticalHeader().setVisible(False)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setSelectionMode(QTableWidget.SingleSelection)
        self.table.setEditTriggers(
            QTableWidget.DoubleClicked | QTableWidget.SelectedClicked | QTableWidget.EditKeyPressed
        )
        self.table.itemChanged.connect(self._on_line_changed)
        header = self.table.horizontalHeader()
        header.setMinimumHeight(32)
        header.setSectionResizeMode(COL_CODE, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(COL_DESCRIPTION, QHeaderView.Stretch)
        for col in (COL_QUANTITY, COL_PRICE, COL_VAT, COL_TOTAL):
            header.setSectionResizeMode(col, QHeaderView.ResizeToContents)
        header.setMinimumSectionSize(90)
        v.addWidget(self.table, 1)
        return panel

    def _build_totals(self) -> QWidget:
        panel = QWidget()
        h = QHBoxLayout(panel)
        h.setContentsMargins(0, 0, 0, 0)
        h.setSpacing(12)
        h.addStretch(1)
        self.lbl_subtotal = QLabel()
        self.lbl_vat = QLabel()
        self.lbl_total = QLabel()
        self.lbl_total.setStyleSheet("font-weight: 700;")
        h.addWidget(self.lbl_subtotal)
        h.addWidget(self.lbl_vat)
        h.addWidget(self.lbl_total)
        self._refresh_totals()
        return panel

    def _build_leasing(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setContentsMargins(12, 12, 12, 12)

        self.chk_leasing = QCheckBox(t("leasing_enabled"))
        self.chk_leasing.toggled.connect(self._on_leasing_toggled)
        layout.addWidget(self.chk_leasing)

        self.group_leasing = QGroupBox()
        form = self._form(self.group_leasing)

        self.cb_leasing_kind = QComboBox()
        for key, label in KIND_LABELS.items():
            self.cb_leasing_kind.addItem(label, key)
        self.cb_periodicity = QComboBox()
        for key, label in PERIODICITY_LABELS.items():
            self.cb_periodicity.addItem(label, key)

        self.ed_asset_value = QLineEdit()
        self.ed_leasing_vat = QLineEdit()
        self.lbl_vat_amount = QLabel()
        self.lbl_total_vat_incl = QLabel()
        self.ed_down_value = QLineEdit()
        self.ed_down_percent = QLineEdit()
        self.ed_net_capital = QLineEdit()
        self.ed_duration = QLineEdit()
        self.ed_installments = QLineEdit()
        self.ed_installment_amount = QLineEdit()
        self.ed_start_date = OptionalDateEdit()
        self.ed_first_date = OptionalDateEdit()

        form.addRow(t("leasing_kind"), self.cb_leasing_kind)
        form.addRow(t("asset_value"), self.ed_asset_value)
        form.addRow(t("leasing_vat_rate"), self.ed_leasing_vat)
        form.addRow(t("vat_amount"), self.lbl_vat_amount)
        form.addRow(t("total_vat_incl"), self.lbl_total_vat_incl)
        form.addRow(t("down_payment_value"), self.ed_down_value)
        form.addRow(t("down_payment_percent"), self.ed_down_percent)
        form.addRow(t("net_financed_capital"), self.ed_net_capital)
        form.addRow(t("duration_months"), self.ed_duration)
        form.addRow(t("installment_count"), self.ed_installments)
        form.addRow(t("periodicity"), self.cb_periodicity)
        form.addRow(t("installment_amount"), self.ed_installment_amount)
        form.addRow(t("start_date"), self.ed_start_date)
        form.addRow(t("first_installment_date"), self.ed_first_date)

        for edit in (
            self.ed_asset_value,
            self.ed_leasing_vat,
            self.ed_down_value,
            self.ed_down_percent,
            self.ed_net_capital,
            self.ed_duration,
            self.ed_installments,
            self.ed_installment_amount,
        ):
            edit.editingFinished.connect(self._on_leasing_edited)
        self.cb_leasing_kind.currentIndexChanged.connect(self._on_leasing_edited)
        self.cb_periodicity.currentIndexChanged.connect(self._on_leasing_edited)
        self.ed_start_date.dateChanged.connect(self._on_leasing_edited)
        self.ed_first_date.dateChanged.connect(self._on_leasing_edited)

        layout.addWidget(self.group_leasing)
        layout.addStretch(1)
        self.group_leasing.setVisible(False)
        return page

    def _build_sections(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        group_index = QGroupBox(t("doc_index"))
        form = self._form(group_index)
        self.ed_toc_text = QPlainTextEdit()
        self.ed_toc_text_below = QPlainTextEdit()
        self.ed_premise = QPlainTextEdit()
        self.hardware_slots = ImageSlotsWidget()
        self.sp_hardware_height = _spin(2000, suffix=" pt")
        form.addRow(t("toc_text"), self.ed_toc_text)
        form.addRow(t("toc_text_below"), self.ed_toc_text_below)
        form.addRow(t("premise_text"), self.ed_premise)
        form.addRow(t("hardware_images"), self.hardware_slots)
        form.addRow(t("image_height"), self.sp_hardware_height)
        layout.addWidget(group_index)

        group_software = QGroupBox(t("doc_software"))
        form = self._form(group_software)
        self.ed_software = QPlainTextEdit()
        self.software_slots = ImageSlotsWidget()
        self.sp_software_height = _spin(2000, suffix=" pt")
        self.sp_software_scale = _spin(100, suffix=" %")
        self.target_slots = ImageSlotsWidget()
        self.sp_target_height = _spin(2000, suffix=" pt")
        self.sp_target_scale = _spin(100, suffix=" %")
        form.addRow(t("software_text"), self.ed_software)
        form.addRow(t("software_images"), self.software_slots)
        form.addRow(t("image_height"), self.sp_software_height)
        form.addRow(t("image_scale"), self.sp_software_scale)
        form.addRow(t("target_images"), self.target_slots)
        form.addRow(t("image_height"), self.sp_target_height)
        form.addRow(t("image_scale"), self.sp_target_scale)
        layout.addWidget(group_software)

        group_products = QGroupBox(t("doc_products"))
        form = self._form(group_products)
        self.ed_product_text = QPlainTextEdit()
        self.product_images = QTableWidget(0, 2)
        self.product_images.setHorizontalHeaderLabels([t("attachment_image"), t("caption")])
        self.product_images.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        self.product_images.verticalHeader().setVisible(False)
        self.product_images.setMinimumHeight(160)
        product_actions = QHBoxLayout()
        self.btn_add_product_image = QPushButton(t("add"))
        self.btn_add_product_image.clicked.connect(lambda: self._append_product_image(ProductImage()))
        self.btn_remove_product_image = QPushButton(t("remove"))
        self.btn_remove_product_image.clicked.connect(self._remove_product_image)
        self.cb_caption_line = QComboBox()
        self.cb_caption_line.activated.connect(self._caption_from_line)
        product_actions.addWidget(self.btn_add_product_image)
        product_actions.addWidget(self.btn_remove_product_image)
        product_actions.addWidget(QLabel(t("caption_from_line")))
        product_actions.addWidget(self.cb_caption_line, 1)
        self.sp_product_scale = _spin(100, suffix=" %")
        self.sp_product_max_height = _spin(2000, suffix=" pt")
        self.cb_product_fit = QComboBox()
        self.cb_product_fit.addItem(t("fit_contain"), "contain")
        self.cb_product_fit.addItem(t("fit_cover"), "cover")
        form.addRow(t("product_text"), self.ed_product_text)
        form.addRow(t("product_images"), self.product_images)
        form.addRow("", product_actions)
        form.addRow(t("image_scale"), self.sp_product_scale)
        form.addRow(t("image_max_height"), self.sp_product_max_height)
        form.addRow(t("image_fit"), self.cb_product_fit)
        layout.addWidget(group_products)

        group_conditions = QGroupBox(t("doc_conditions"))
        form = self._form(group_conditions)
        self.ed_conditions = QPlainTextEdit()
        form.addRow(t("supply_conditions"), self.ed_conditions)
        layout.addWidget(group_conditions)
        layout.addStretch(1)

        for edit in (
            self.ed_toc_text,
            self.ed_toc_text_below,
            self.ed_premise,
            self.ed_software,
            self.ed_product_text,
            self.ed_conditions,
        ):
            edit.textChanged.connect(self._schedule_preview)
        for slots in (self.hardware_slots, self.software_slots, self.target_slots):
            slots.changed.connect(self._schedule_preview)
        for box in (
            self.sp_hardware_height,
            self.sp_software_height,
            self.sp_software_scale,
            self.sp_target_height,
            self.sp_target_scale,
            self.sp_product_scale,
            self.sp_product_max_height,
        ):
            box.valueChanged.connect(self._schedule_preview)
        self.cb_product_fit.currentIndexChanged.connect(self._schedule_preview)
        return page

    def _build_attachments(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setContentsMargins(12, 12, 12, 12)

        top = QHBoxLayout()
        top.addWidget(QLabel(t("attachments_position")))
        self.cb_attachments_position = QComboBox()
        self.cb_attachments_position.addItem(t("position_after"), "after")
        self.cb_attachments_position.addItem(t("position_before"), "before")
        self.cb_attachments_position.currentIndexChanged.connect(self._schedule_preview)
        top.addWidget(self.cb_attachments_position)
        top.addStretch(1)
        layout.addLayout(top)

        body = QHBoxLayout()
        left = QVBoxLayout()
        self.list_attachments = QListWidget()
        self.list_attachments.currentRowChanged.connect(self._on_attachment_selected)
        left.addWidget(self.list_attachments, 1)
        buttons = QHBoxLayout()
        self.btn_add_attachment = QPushButton(t("add"))
        self.btn_add_attachment.clicked.connect(self._add_attachment)
        self.btn_remove_attachment = QPushButton(t("remove"))
        self.btn_remove_attachment.clicked.connect(self._remove_attachment)
        self.btn_attachment_up = QPushButton(t("move_up"))
        self.btn_attachment_up.clicked.connect(lambda: self._move_attachment(-1))
        self.btn_attachment_down = QPushButton(t("move_down"))
        self.btn_attachment_down.clicked.connect(lambda: self._move_attachment(1))
        for btn in (self.btn_add_attachment, self.btn_remove_attachment, self.btn_attachment_up, self.btn_attachment_down):
            buttons.addWidget(btn)
        left.addLayout(buttons)
        body.addLayout(left, 1)

        self.group_attachment = QGroupBox()
        form = self._form(self.group_attachment)
        self.ed_att_title = QLineEdit()
        self.ed_att_description = QPlainTextEdit()
        self.att_image = ImageSlot()
        self.cb_att_position = QComboBox()
        self.cb_att_position.addItem("", None)
        for key in IMAGE_POSITIONS:
            self.cb_att_position.addItem(t(f"pos_{key}"), key)
        self.sp_att_height = _spin(2000, suffix=" pt")
        self.sp_att_font = _spin(72, suffix=" pt")
        self.ed_att_color = QLineEdit()
        self.ed_att_color.setPlaceholderText("#333333")
        self.chk_att_title = QCheckBox(t("show_title"))
        self.chk_att_title.setTristate(True)
        self.chk_att_full = QCheckBox(t("full_page_image"))
        self.chk_att_full.setTristate(True)
        form.addRow(t("attachment_title"), self.ed_att_title)
        form.addRow(t("description"), self.ed_att_description)
        form.addRow(t("attachment_image"), self.att_image)
        form.addRow(t("image_position"), self.cb_att_position)
        form.addRow(t("image_height"), self.sp_att_height)
        form.addRow(t("font_size"), self.sp_att_font)
        form.addRow(t("text_color"), self.ed_att_color)
        form.addRow("", self.chk_att_title)
        form.addRow("", self.chk_att_full)
        self.group_attachment.setEnabled(False)
        body.addWidget(self.group_attachment, 2)
        layout.addLayout(body, 1)

        self.ed_att_title.textEdited.connect(self._on_attachment_edited)
        self.ed_att_description.textChanged.connect(self._on_attachment_edited)
        self.att_image.changed.connect(self._on_attachment_edited)
        self.cb_att_position.currentIndexChanged.connect(self._on_attachment_edited)
        self.sp_att_height.valueChanged.connect(self._on_attachment_edited)
        self.sp_att_font.valueChanged.connect(self._on_attachment_edited)
        self.ed_att_color.editingFinished.connect(self._on_attachment_edited)
        self.chk_att_title.stateChanged.connect(self._on_attachment_edited)
        self.chk_att_full.stateChanged.connect(self._on_attachment_edited)
        return page

    def _build_preview(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setContentsMargins(0, 0, 0, 0)
        self.preview = PdfPreviewView(page)
        layout.addWidget(self.preview, 1)
        return page

    def _build_actions(self) -> QHBoxLayout:
        row = QHBoxLayout()
        row.addStretch(1)
        self.btn_cancel = QPushButton(tu("cancel"))
        self.btn_save = QPushButton(tu("save"))
        self.btn_save.setDefault(True)
        self.btn_save.setEnabled(False)
        self.btn_cancel.clicked.connect(self.reject)
        self.btn_save.clicked.connect(self._save)
        row.addWidget(self.btn_cancel)
        row.addWidget(self.btn_save)
        return row

    def _set_table_headers(self) -> None:
        self.table.setHorizontalHeaderLabels(
            [t("code"), t("description"), t("quantity"), t("unit_price"), t("vat_rate"), t("total")]
        )

    # ---------------------------
    # Reference data
    # ---------------------------

    def _apply_reference_data(self, data: ReferenceData) -> None:
        if self._loader.cancelled:
            return
        self.settings = data.settings
        self.articles = data.articles
        self.customers = data.customers
        self.last_quote = data.last_quote
        self.quote = data.quote if data.quote is not None else QuoteData()

        self.cb_customer.clear()
        self.cb_customer.addItem("", None)
        for customer in self.customers:
            self.cb_customer.addItem(customer.name, customer.id)

        self._load_form()
        self._loading = False
        self.lbl_status.setVisible(False)
        self.tabs.setEnabled(True)
        self.btn_save.setEnabled(True)
        self._schedule_preview()

    def _on_reference_failed(self, error: ReferenceDataError) -> None:
        self.lbl_status.setText(t("reference_data_failed", error=error.cause))
        QMessageBox.critical(self, t("error"), t("reference_data_failed", error=error.cause))

    def _load_form(self) -> None:
        q = self.quote
        if q.is_new:
            self.ed_number.clear()
            self.ed_number.setPlaceholderText(t("number_auto", number=resolve_display_number(None, self.settings)))
        else:
            self.ed_number.setText(q.number)
        self.ed_date.setDate(_qdate(q.date))
        self.ed_customer_name.setText(q.customer.name)
        self.ed_customer_address.setText(q.customer.address)
        self.ed_customer_vat.setText(q.customer.vat_id)
        self.ed_notes.setPlainText(q.notes)
        self.chk_show_totals.setChecked(bool(q.show_totals))
        self.chk_show_bank.setChecked(bool(q.show_bank_info))

        self._reload_lines()

        self.chk_leasing.blockSignals(True)
        self.chk_leasing.setChecked(q.leasing is not None)
        self.chk_leasing.blockSignals(False)
        self.group_leasing.setVisible(q.leasing is not None)
        self._load_leasing()

        # Inherited fields are shown pre-filled on a new quote; saving resolves them again.
        source = q
        if q.is_new and self.last_quote is not None:
            source = inherit_defaults(QuoteData(), self.last_quote)
        self.ed_toc_text.setPlainText(q.toc_text or "")
        self.ed_toc_text_below.setPlainText(q.toc_text_below or "")
        self.ed_premise.setPlainText(source.premise_text or "")
        self.hardware_slots.set_values(source.premise_hardware_images)
        _set_spin(self.sp_hardware_height, source.premise_hardware_image_height)
        self.ed_software.setPlainText(source.software_text or "")
        self.software_slots.set_values(source.software_images)
        _set_spin(self.sp_software_height, source.software_image_height)
        _set_spin(self.sp_software_scale, q.software_image_scale)
        self.target_slots.set_values(source.target_audience_images)
        _set_spin(self.sp_target_height, source.target_audience_image_height)
        _set_spin(self.sp_target_scale, q.target_audience_image_scale)
        self.ed_product_text.setPlainText(source.product_text or "")
        self.product_images.setRowCount(0)
        for image in q.product_images:
            self._append_product_image(image)
        _set_spin(self.sp_product_scale, q.product_image_scale)
        _set_spin(self.sp_product_max_height, q.product_image_max_height)
        idx = self.cb_product_fit.findData(q.product_images_fit or "contain")
        self.cb_product_fit.setCurrentIndex(max(idx, 0))
        self.ed_conditions.setPlainText("\n".join(q.supply_conditions))

        position = q.attachments_position or self.settings.attachments_position or "after"
        idx = self.cb_attachments_position.findData(position)
        self.cb_attachments_position.setCurrentIndex(max(idx, 0))
        self._reload_attachment_list()

    # ---------------------------
    # Header
    # ---------------------------

    def _on_customer_picked(self, index: int) -> None:
        customer_id = self.cb_customer.itemData(index)
        customer = next((c for c in self.customers if c.id == customer_id), None)
        if customer is None:
            return
        self.ed_customer_name.setText(customer.name)
        self.ed_customer_address.setText(customer.address)
        self.ed_customer_vat.setText(customer.vat_id)
        self._schedule_preview()

    # ---------------------------
    # Lines
    # ---------------------------

    def _reload_lines(self) -> None:
        self.table.blockSignals(True)
        self.table.setRowCount(0)
        for item in self.quote.items:
            row = self.table.rowCount()
            self.table.insertRow(row)
            values = [
                item.code,
                item.description,
                format_number(item.quantity),
                format_number(item.unit_price),
                format_number(item.vat_rate),
                format_money(item.total),
            ]
            for col, value in enumerate(values):
                cell = QTableWidgetItem(value)
                if col >= COL_QUANTITY:
                    cell.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
                if col == COL_TOTAL:
                    cell.setFlags(cell.flags() & ~Qt.ItemIsEditable)
                    cell.setForeground(QColor("#6b7280"))
                self.table.setItem(row, col, cell)
        self.table.blockSignals(False)
        self._reload_caption_lines()
        self._refresh_totals()

    def _on_line_changed(self, cell: QTableWidgetItem) -> None:
        field = _LINE_FIELDS.get(cell.column())
        if field is None or cell.row() >= len(self.quote.items):
            return
        update_line(self.quote, cell.row(), **{field: cell.text()})
        row = self.table.currentRow()
        self._reload_lines()
        if row >= 0:
            self.table.selectRow(row)
        self._schedule_preview()

    def _add_line(self) -> None:
        add_line(self.quote, default_vat=self.settings.default_vat)
        self._reload_lines()
        self.table.selectRow(len(self.quote.items) - 1)
        self._schedule_preview()

    def _add_from_catalog(self) -> None:
        picker = ArticlePicker(self.articles, self)
        if picker.exec() != QDialog.Accepted:
            return
        article = picker.selected_article()
        if article is None:
            return
        add_line(self.quote, default_vat=self.settings.default_vat)
        apply_article(self.quote, len(self.quote.items) - 1, article)
        self._reload_lines()
        self.table.selectRow(len(self.quote.items) - 1)
        self._schedule_preview()

    def _remove_line(self) -> None:
        row = self.table.currentRow()
        if row < 0 or row >= len(self.quote.items):
            return
        remove_line(self.quote, row)
        self._reload_lines()
        self._schedule_preview()

    def _move_line(self, offset: int) -> None:
        row = self.table.currentRow()
        if row < 0:
            return
        target = move_line(self.quote, row, offset)
        self._reload_lines()
        self.table.selectRow(target)
        self._schedule_preview()

    def _refresh_totals(self) -> None:
        self.lbl_subtotal.setText(f"{t('subtotal')}: {format_money(self.quote.subtotal)}")
        self.lbl_vat.setText(f"{t('vat')}: {format_money(self.quote.vat_total)}")
        self.lbl_total.setText(f"{t('total')}: {format_money(self.quote.total)}")

    # ---------------------------
    # Leasing
    # ---------------------------

    def _on_leasing_toggled(self, checked: bool) -> None:
        if checked:
            activate_leasing(self.quote, self.cb_leasing_kind.currentData() or "leasing")
        else:
            deactivate_leasing(self.quote)
        self.group_leasing.setVisible(checked)
        self._load_leasing()
        self._schedule_preview()

    def _load_leasing(self) -> None:
        plan = self.quote.leasing
        widgets = (
            self.cb_leasing_kind,
            self.cb_periodicity,
            self.ed_start_date,
            self.ed_first_date,
        )
        for widget in widgets:
            widget.blockSignals(True)
        if plan is None:
            for edit in (
                self.ed_asset_value,
                self.ed_leasing_vat,
                self.ed_down_value,
                self.ed_down_percent,
                self.ed_net_capital,
                self.ed_duration,
                self.ed_installments,
                self.ed_installment_amount,
            ):
                edit.clear()
            self.lbl_vat_amount.clear()
            self.lbl_total_vat_incl.clear()
        else:
            self.cb_leasing_kind.setCurrentIndex(max(self.cb_leasing_kind.findData(plan.kind), 0))
            self.cb_periodicity.setCurrentIndex(max(self.cb_periodicity.findData(plan.periodicity), 0))
            self.ed_asset_value.setText(format_number(plan.asset_value))
            self.ed_leasing_vat.setText(_number_text(plan.vat_rate))
            self.lbl_vat_amount.setText(format_money(plan.vat_amount))
            self.lbl_total_vat_incl.setText(format_money(plan.total_asset_value_vat_incl))
            self.ed_down_value.setText(_number_text(plan.down_payment_value))
            self.ed_down_percent.setText(_number_text(plan.down_payment_percent))
            self.ed_net_capital.setText(_number_text(plan.net_financed_capital))
            self.ed_duration.setText(_number_text(plan.duration_months))
            self.ed_installments.setText(_number_text(plan.installment_count))
            self.ed_installment_amount.setText(_number_text(plan.installment_amount))
            self.ed_start_date.set_value(plan.start_date)
            self.ed_first_date.set_value(plan.first_installment_date)
        for widget in widgets:
            widget.blockSignals(False)

    def _on_leasing_edited(self, *_args) -> None:
        if self.quote.leasing is None:
            return
        update_leasing(
            self.quote,
            kind=self.cb_leasing_kind.currentData() or "leasing",
            asset_value=to_amount(self.ed_asset_value.text()),
            vat_rate=_optional_number(self.ed_leasing_vat.text()),
            down_payment_value=_optional_number(self.ed_down_value.text()),
            down_payment_percent=_optional_number(self.ed_down_percent.text()),
            net_financed_capital=_optional_number(self.ed_net_capital.text()),
            duration_months=_optional_int(self.ed_duration.text()),
            installment_count=_optional_int(self.ed_installments.text()),
            periodicity=self.cb_periodicity.currentData() or "monthly",
            installment_amount=_optional_number(self.ed_installment_amount.text()),
            start_date=self.ed_start_date.value(),
            first_installment_date=self.ed_first_date.value(),
        )
        self._load_leasing()
        self._schedule_preview()

    # ---------------------------
    # Product images
    # ---------------------------

    def _append_product_image(self, image: ProductImage) -> None:
        row = self.product_images.rowCount()
        self.product_images.insertRow(row)
        slot = ImageSlot(image.src)
        slot.changed.connect(self._schedule_preview)
        self.product_images.setCellWidget(row, 0, slot)
        caption = QTableWidgetItem(image.caption)
        self.product_images.setItem(row, 1, caption)
        self.product_images.setRowHeight(row, slot.sizeHint().height() + 8)
        self._schedule_preview()

    def _remove_product_image(self) -> None:
        row = self.product_images.currentRow()
        if row < 0:
            return
        self.product_images.removeRow(row)
        self._schedule_preview()

    def _reload_caption_lines(self) -> None:
        self.cb_caption_line.clear()
        for item in self.quote.items:
            self.cb_caption_line.addItem(caption_from_line(item))

    def _caption_from_line(self, index: int) -> None:
        row = self.product_images.currentRow()
        if row < 0 or index < 0 or index >= len(self.quote.items):
            return
        self.product_images.setItem(row, 1, QTableWidgetItem(caption_from_line(self.quote.items[index])))
        self._schedule_preview()

    def _collect_product_images(self) -> list[ProductImage]:
        images: list[ProductImage] = []
        for row in range(self.product_images.rowCount()):
            slot = self.product_images.cellWidget(row, 0)
            caption = self.product_images.item(row, 1)
            images.append(
                ProductImage(
                    src=slot.value() if isinstance(slot, ImageSlot) else "",
                    caption=caption.text().strip() if caption is not None else "",
                )
            )
        return images

    # ---------------------------
    # Attachments
    # ---------------------------

    def _reload_attachment_list(self, select: int = -1) -> None:
        self.list_attachments.blockSignals(True)
        self.list_attachments.clear()
        for index, att in enumerate(self.quote.attachments, start=1):
            self.list_attachments.addItem(att.title or f"{t('doc_attachments')} {index}")
        self.list_attachments.blockSignals(False)
        if 0 <= select < len(self.quote.attachments):
            self.list_attachments.setCurrentRow(select)
        else:
            self._on_attachment_selected(-1)

    def _on_attachment_selected(self, row: int) -> None:
        self._current_attachment = row
        enabled = 0 <= row < len(self.quote.attachments)
        self.group_attachment.setEnabled(enabled)
        att = self.quote.attachments[row] if enabled else Attachment()
        layout = att.layout
        edits = (
            self.ed_att_title,
            self.ed_att_description,
            self.att_image,
            self.cb_att_position,
            self.sp_att_height,
            self.sp_att_font,
            self.ed_att_color,
            self.chk_att_title,
            self.chk_att_full,
        )
        for widget in edits:
            widget.blockSignals(True)
        self.ed_att_title.setText(att.title)
        self.ed_att_description.setPlainText(att.description)
        self.att_image.set_value(att.image, notify=False)
        self.cb_att_position.setCurrentIndex(max(self.cb_att_position.findData(layout.image_position), 0))
        _set_spin(self.sp_att_height, layout.image_height)
        _set_spin(self.sp_att_font, layout.description_font_size)
        self.ed_att_color.setText(layout.description_color or "")
        self.chk_att_title.setCheckState(_tristate(layout.show_title))
        self.chk_att_full.setCheckState(_tristate(layout.full_page_image))
        for widget in edits:
            widget.blockSignals(False)

    def _on_attachment_edited(self, *_args) -> None:
        row = self._current_attachment
        if not 0 <= row < len(self.quote.attachments):
            return
        att = self.quote.attachments[row]
        att.title = self.ed_att_title.text().strip()
        att.description = self.ed_att_description.toPlainText()
        att.image = self.att_image.value() or None
        att.layout = AttachmentLayout(
            image_position=self.cb_att_position.currentData(),
            image_height=_spin_value(self.sp_att_height),
            description_font_size=_spin_value(self.sp_att_font),
            description_color=self.ed_att_color.text().strip() or None,
            show_title=_from_tristate(self.chk_att_title.checkState()),
            full_page_image=_from_tristate(self.chk_att_full.checkState()),
        )
        item = self.list_attachments.item(row)
        if item is not None:
            item.setText(att.title or f"{t('doc_attachments')} {row + 1}")
        self._schedule_preview()

    def _add_attachment(self) -> None:
        # New attachments start from the layout stored by the last saved quote.
        layout = AttachmentLayout.from_dict(self.settings.attachment_layout.to_dict())
        self.quote.attachments.append(Attachment(layout=layout))
        self._reload_attachment_list(len(self.quote.attachments) - 1)
        self._schedule_preview()

    def _remove_attachment(self) -> None:
        row = self.list_attachments.currentRow()
        if not 0 <= row < len(self.quote.attachments):
            return
        self.quote.attachments.pop(row)
        self._reload_attachment_list(min(row, len(self.quote.attachments) - 1))
        self._schedule_preview()

    def _move_attachment(self, offset: int) -> None:
        row = self.list_attachments.currentRow()
        target = row + offset
        items = self.quote.attachments
        if not (0 <= row < len(items) and 0 <= target < len(items)):
            return
        items[row], items[target] = items[target], items[row]
        self._reload_attachment_list(target)
        self._schedule_preview()

    # ---------------------------
    # Preview and save
    # ---------------------------

    def _collect_form(self) -> QuoteData:
        q = self.quote
        q.number = self.ed_number.text().strip()
        q.date = self.ed_date.date().toPython()
        q.customer = CustomerSnapshot(
            name=self.ed_customer_name.text().strip(),
            address=self.ed_customer_address.text().strip(),
            vat_id=self.ed_customer_vat.text().strip(),
        )
        q.notes = self.ed_notes.toPlainText().strip()
        q.show_totals = self.chk_show_totals.isChecked()
        q.show_bank_info = self.chk_show_bank.isChecked()

        q.toc_text = self.ed_toc_text.toPlainText().strip() or None
        q.toc_text_below = self.ed_toc_text_below.toPlainText().strip() or None
        q.premise_text = self.ed_premise.toPlainText().strip() or None
        q.premise_hardware_images = self.hardware_slots.values()
        q.premise_hardware_image_height = _spin_value(self.sp_hardware_height)
        q.software_text = self.ed_software.toPlainText().strip() or None
        q.software_images = self.software_slots.values()
        q.software_image_height = _spin_value(self.sp_software_height)
        q.software_image_scale = _spin_value(self.sp_software_scale)
        q.target_audience_images = self.target_slots.values()
        q.target_audience_image_height = _spin_value(self.sp_target_height)
        q.target_audience_image_scale = _spin_value(self.sp_target_scale)
        q.product_text = self.ed_product_text.toPlainText().strip() or None
        q.product_images = self._collect_product_images()
        q.product_image_scale = _spin_value(self.sp_product_scale)
        q.product_image_max_height = _spin_value(self.sp_product_max_height)
        q.product_images_fit = self.cb_product_fit.currentData()
        q.supply_conditions = [
            line.strip() for line in self.ed_conditions.toPlainText().splitlines() if line.strip()
        ]
        q.attachments_position = self.cb_attachments_position.currentData()
        return q

    def _schedule_preview(self, *_args) -> None:
        if self._loading:
            return
        self._preview_timer.start()

    def _on_tab_changed(self, index: int) -> None:
        if self.tabs.widget(index) is self.preview.parentWidget():
            self._refresh_preview()

    def _refresh_preview(self) -> None:
        if self._loading or self.tabs.currentWidget() is not self.preview.parentWidget():
            return
        quote = self._collect_form()
        try:
            doc = build_document(quote, self.settings, self.last_quote)
            self.preview.load_bytes(quote_pdf_bytes(doc))
        except Exception:
            logger.exception("Preview rendering failed")
            self.lbl_status.setText(t("preview_failed"))
            self.lbl_status.setVisible(True)
            return
        self.lbl_status.setVisible(False)

    def _save(self) -> None:
        quote = self._collect_form()
        try:
            saved = save_quote(self.ctx, quote)
        except QuoteValidationError as exc:
            QMessageBox.warning(self, t("warning"), "\n".join(exc.errors.values()))
            return
        except (PersistenceError, LookupError) as exc:
            QMessageBox.critical(self, t("error"), t("save_failed", error=exc))
            return
        self.quote = saved
        self._quote_id = saved.id
        parent = self.parent()
        window = parent.window() if parent is not None else None
        if window is not None and hasattr(window, "statusBar"):
            window.statusBar().showMessage(t("quote_saved", number=saved.number), 5000)
        self.accept()

    def done(self, result: int) -> None:
        self._preview_timer.stop()
        self._loader.cancel()
        super().done(result)


def _tristate(value: bool | None) -> Qt.CheckState:
    if value is None:
        return Qt.PartiallyChecked
    return Qt.Checked if value else Qt.Unchecked


def _from_tristate(state) -> bool | None:
    state = Qt.CheckState(state)
    if state == Qt.PartiallyChecked:
        return None
    return state == Qt.Checked
