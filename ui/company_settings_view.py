from __future__ import annotations

from dataclasses import replace

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from services.company import load_company_settings, save_company_settings
from services.context import SessionContext
from services.document_model import resolve_display_number
from services.errors import PersistenceError
from services.numbering import reconcile_counter
from services.quote_model import SettingsData
from settings import AppSettings
from ui.app_events import app_events
from ui.i18n import LANGUAGES, set_language, t, tu
from ui.image_slots import ImageSlot


def _spin(maximum: float, suffix: str = "", decimals: int = 0) -> QDoubleSpinBox:
    box = QDoubleSpinBox()
    box.setRange(0, maximum)
    box.setDecimals(decimals)
    box.setSpecialValueText(" ")
    if suffix:
        box.setSuffix(suffix)
    return box


def _spin_value(box: QDoubleSpinBox) -> float | None:
    return box.value() or None


class CompanySettingsView(QWidget):
    def __init__(self, ctx: SessionContext) -> None:
        super().__init__()
        self.ctx = ctx
        self._app_settings = AppSettings.load()
        self._data = SettingsData()

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        layout.addWidget(scroll)

        content = QWidget()
        scroll.setWidget(content)

        layout = QVBoxLayout(content)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)

        layout.addWidget(self._build_company_form())
        layout.addWidget(self._build_numbering_form())
        layout.addWidget(self._build_defaults_form())
        layout.addWidget(self._build_appearance_form())
        layout.addLayout(self._build_actions())
        layout.addStretch(1)

        self._load_values()
        app_events.quotes_changed.connect(self._refresh_next_number)

    def _form(self, group: QGroupBox) -> QFormLayout:
        form = QFormLayout(group)
        form.setLabelAlignment(Qt.AlignRight)
        form.setFormAlignment(Qt.AlignTop)
        form.setHorizontalSpacing(12)
        form.setVerticalSpacing(8)
        return form

    def _build_company_form(self) -> QGroupBox:
        self.group_company = QGroupBox(t("company_data"))
        form = self._form(self.group_company)

        self.ed_name = QLineEdit()
        self.ed_address = QLineEdit()
        self.ed_vat = QLineEdit()
        self.ed_email = QLineEdit()
        self.ed_phone = QLineEdit()
        self.ed_bank = QPlainTextEdit()
        self.ed_bank.setMaximumHeight(80)
        self.logo = ImageSlot()
        self.ed_logo_url = QLineEdit()
        self.ed_logo_url.setPlaceholderText("https://...")
        self.signature = ImageSlot()
        self.sp_signature_scale = _spin(100, " %")

        form.addRow(t("company_name"), self.ed_name)
        form.addRow(t("company_address"), self.ed_address)
        form.addRow(t("company_vat"), self.ed_vat)
        form.addRow(t("company_email"), self.ed_email)
        form.addRow(t("company_phone"), self.ed_phone)
        form.addRow(t("bank_info"), self.ed_bank)
        form.addRow(t("logo"), self.logo)
        form.addRow(t("logo_url"), self.ed_logo_url)
        form.addRow(t("signature"), self.signature)
        form.addRow(t("signature_scale"), self.sp_signature_scale)
        return self.group_company

    def _build_numbering_form(self) -> QGroupBox:
        self.group_numbering = QGroupBox(t("numbering"))
        form = self._form(self.group_numbering)

        self.ed_prefix = QLineEdit()
        self.ed_prefix.textEdited.connect(self._refresh_next_label)
        next_row = QWidget()
        row = QHBoxLayout(next_row)
        row.setContentsMargins(0, 0, 0, 0)
        self.lbl_next_number = QLabel("")
        self.btn_reconcile = QPushButton(t("reconcile_counter"))
        self.btn_reconcile.clicked.connect(self._reconcile)
        row.addWidget(self.lbl_next_number, 1)
        row.addWidget(self.btn_reconcile)
        self.sp_default_vat = _spin(100, " %", decimals=2)

        form.addRow(t("quote_number_prefix"), self.ed_prefix)
        form.addRow(t("next_quote_number"), next_row)
        form.addRow(t("default_vat"), self.sp_default_vat)
        return self.group_numbering

    def _build_defaults_form(self) -> QGroupBox:
        self.group_defaults = QGroupBox(t("defaults"))
        form = self._form(self.group_defaults)

        self.hardware_image = ImageSlot()
        self.sp_hardware_height = _spin(2000, " pt")
        self.software_image = ImageSlot()
        self.sp_software_scale = _spin(100, " %")
        self.target_image = ImageSlot()
        self.sp_target_scale = _spin(100, " %")
        self.sp_product_scale = _spin(100, " %")
        self.sp_product_max_height = _spin(2000, " pt")
        self.cb_attachments_position = QComboBox()
        self.cb_attachments_position.addItem(t("position_after"), "after")
        self.cb_attachments_position.addItem(t("position_before"), "before")
        self.ed_contract = QPlainTextEdit()
        self.ed_contract.setMinimumHeight(160)

        form.addRow(t("default_hardware_image"), self.hardware_image)
        form.addRow(t("image_height"), self.sp_hardware_height)
        form.addRow(t("default_software_image"), self.software_image)
        form.addRow(t("image_scale"), self.sp_software_scale)
        form.addRow(t("default_target_image"), self.target_image)
        form.addRow(t("image_scale"), self.sp_target_scale)
        form.addRow(f"{t('product_images')} - {t('image_scale')}", self.sp_product_scale)
        form.addRow(f"{t('product_images')} - {t('image_max_height')}", self.sp_product_max_height)
        form.addRow(t("attachments_position"), self.cb_attachments_position)
        form.addRow(t("contract_pages_text"), self.ed_contract)
        return self.group_defaults

    def _build_appearance_form(self) -> QGroupBox:
        self.group_appearance = QGroupBox(t("appearance"))
        form = self._form(self.group_appearance)

        self.cb_lang = QComboBox()
        for code in LANGUAGES:
            self.cb_lang.addItem(t(f"lang_{code}"), code)
        self.cb_theme = QComboBox()
        self.cb_theme.addItem(t("theme_light"), "light")
        self.cb_theme.addItem(t("theme_dark"), "dark")

        form.addRow(t("language"), self.cb_lang)
        form.addRow(t("theme"), self.cb_theme)
        return self.group_appearance

    def _build_actions(self) -> QHBoxLayout:
        row = QHBoxLayout()
        row.addStretch(1)
        self.btn_save = QPushButton(tu("save"))
        self.btn_save.clicked.connect(self._save)
        row.addWidget(self.btn_save)
        return row

    def _load_values(self) -> None:
        try:
            self._data = load_company_settings(self.ctx)
        except PersistenceError as exc:
            QMessageBox.critical(self, t("error"), str(exc))
            return
        d = self._data
        self.ed_name.setText(d.company_name)
        self.ed_address.setText(d.company_address)
        self.ed_vat.setText(d.company_vat)
        self.ed_email.setText(d.company_email)
        self.ed_phone.setText(d.company_phone)
        self.ed_bank.setPlainText(d.bank_info)
        self.logo.set_value(d.logo_data, notify=False)
        self.ed_logo_url.setText(d.logo_url or "")
        self.signature.set_value(d.signature_image, notify=False)
        self.sp_signature_scale.setValue(float(d.signature_scale or 0))
        self.ed_prefix.setText(d.quote_number_prefix)
        self.sp_default_vat.setValue(float(d.default_vat))
        self.hardware_image.set_value(d.default_hardware_image, notify=False)
        self.sp_hardware_height.setValue(float(d.default_hardware_image_height or 0))
        self.software_image.set_value(d.default_software_image, notify=False)
        self.sp_software_scale.setValue(float(d.default_software_image_scale or 0))
        self.target_image.set_value(d.default_target_image, notify=False)
        self.sp_target_scale.setValue(float(d.default_target_image_scale or 0))
        self.sp_product_scale.setValue(float(d.default_product_image_scale or 0))
        self.sp_product_max_height.setValue(float(d.default_product_image_max_height or 0))
        idx = self.cb_attachments_position.findData(d.attachments_position or "after")
        self.cb_attachments_position.setCurrentIndex(max(idx, 0))
        self.ed_contract.setPlainText(d.contract_pages_text)
        self._refresh_next_label()

        lang = str(self._app_settings.get("language", "it"))
        idx = self.cb_lang.findData(lang)
        if idx >= 0:
            self.cb_lang.setCurrentIndex(idx)
        theme = str(self._app_settings.get("theme", "light"))
        idx = self.cb_theme.findData(theme)
        if idx >= 0:
            self.cb_theme.setCurrentIndex(idx)

    def _refresh_next_label(self) -> None:
        preview = replace(self._data, quote_number_prefix=self.ed_prefix.text().strip())
        self.lbl_next_number.setText(resolve_display_number(None, preview))

    def _refresh_next_number(self) -> None:
        try:
            self._data = replace(
                self._data, next_quote_number=load_company_settings(self.ctx).next_quote_number
            )
        except PersistenceError:
            return
        self._refresh_next_label()

    def _reconcile(self) -> None:
        try:
            number = reconcile_counter(self.ctx)
        except PersistenceError as exc:
            QMessageBox.critical(self, t("error"), str(exc))
            return
        self._data = replace(self._data, next_quote_number=number)
        self._refresh_next_label()
        QMessageBox.information(
            self, t("reconcile_counter"), t("counter_reconciled", number=resolve_display_number(None, self._data))
        )

    def _collect(self) -> SettingsData:
        return replace(
            self._data,
            company_name=self.ed_name.text(),
            company_address=self.ed_address.text(),
            company_vat=self.ed_vat.text(),
            company_email=self.ed_email.text(),
            company_phone=self.ed_phone.text(),
            bank_info=self.ed_bank.toPlainText(),
            logo_data=self.logo.value() or None,
            logo_url=self.ed_logo_url.text(),
            signature_image=self.signature.value() or None,
            signature_scale=_spin_value(self.sp_signature_scale),
            quote_number_prefix=self.ed_prefix.text(),
            default_vat=self.sp_default_vat.value(),
            default_hardware_image=self.hardware_image.value() or None,
            default_hardware_image_height=_spin_value(self.sp_hardware_height),
            default_software_image=self.software_image.value() or None,
            default_software_image_scale=_spin_value(self.sp_software_scale),
            default_target_image=self.target_image.value() or None,
            default_target_image_scale=_spin_value(self.sp_target_scale),
            default_product_image_scale=_spin_value(self.sp_product_scale),
            default_product_image_max_height=_spin_value(self.sp_product_max_height),
            attachments_position=self.cb_attachments_position.currentData(),
            contract_pages_text=self.ed_contract.toPlainText(),
        )

    def _save(self) -> None:
        try:
            self._data = save_company_settings(self.ctx, self._collect())
        except PersistenceError as exc:
            QMessageBox.critical(self, t("error"), t("save_failed", error=exc))
            return

        language = self.cb_lang.currentData() or "it"
        language_changed = language != self._app_settings.get("language", "it")
        self._app_settings.set("language", language)
        self._app_settings.set("theme", self.cb_theme.currentData() or "light")
        self._app_settings.save()

        app_events.settings_changed.emit()
        if language_changed:
            set_language(language)
            app_events.language_changed.emit(language)
        QMessageBox.information(self, t("settings"), t("settings_saved"))
