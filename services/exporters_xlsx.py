from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Font, numbers

from services.compositor import format_date
from services.document_model import RenderableQuote
from services.exporters_pdf import load_image
from services.leasing import kind_label, periodicity_label
from services.totals import to_amount
from ui.i18n import t


logger = logging.getLogger("preventivi.xlsx")


def render_xlsx(doc: RenderableQuote, path: Path) -> Path:
    """Write the economic offer of ``doc`` as a workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = t("doc_offer")[:31]

    bold = Font(bold=True)
    right = Alignment(horizontal="right")

    ws["A1"] = f"{t('doc_quote')} {doc.number}"
    ws["A1"].font = Font(bold=True, size=14)
    ws["A2"] = t("date")
    ws["B2"] = format_date(doc.date)
    ws["A3"] = t("customer")
    ws["B3"] = doc.customer.name
    ws["A4"] = t("customer_address")
    ws["B4"] = doc.customer.address
    ws["A5"] = t("customer_vat")
    ws["B5"] = doc.customer.vat_id

    if doc.company.logo:
        logo = load_image(doc.company.logo)
        if logo is not None:
            buffer = BytesIO()
            logo.save(buffer, format="PNG")
            img = XLImage(buffer)
            img.width = 160
            img.height = 80
            ws.add_image(img, "E1")

    header = [t("code"), t("description"), t("quantity"), t("unit_price"), t("vat_rate"), t("total")]
    ws.append([])
    ws.append(header)
    for cell in ws[ws.max_row]:
        cell.font = bold

    for item in doc.items:
        ws.append(
            [
                item.code,
                item.description,
                to_amount(item.quantity),
                to_amount(item.unit_price),
                to_amount(item.vat_rate) / 100.0,
                to_amount(item.total),
            ]
        )
        r = ws.max_row
        for col in (3, 4, 6):
            ws.cell(row=r, column=col).number_format = numbers.FORMAT_NUMBER_00
            ws.cell(row=r, column=col).alignment = right
        ws.cell(row=r, column=5).number_format = numbers.FORMAT_PERCENTAGE_00
        ws.cell(row=r, column=5).alignment = right

    if doc.show_totals:
        ws.append([])
        for label, value in (
            (t("subtotal"), doc.subtotal),
            (t("vat"), doc.vat_total),
            (t("total"), doc.total),
        ):
            ws.append([label, float(value or 0)])
            ws.cell(row=ws.max_row, column=1).font = bold
            ws.cell(row=ws.max_row, column=2).number_format = numbers.FORMAT_NUMBER_00
            ws.cell(row=ws.max_row, column=2).alignment = right

    if doc.supply_conditions:
        ws.append([])
        ws.append([t("doc_conditions")])
        ws.cell(row=ws.max_row, column=1).font = bold
        for index, condition in enumerate(doc.supply_conditions, start=1):
            ws.append([f"{index}.", condition])

    if doc.notes:
        ws.append([])
        ws.append([t("notes"), doc.notes])

    if doc.leasing is not None:
        plan = doc.leasing
        ws2 = wb.create_sheet(kind_label(plan.kind)[:31])
        ws2["A1"] = kind_label(plan.kind)
        ws2["A1"].font = bold
        rows = [
            (t("asset_value"), plan.asset_value, numbers.FORMAT_NUMBER_00),
            (t("leasing_vat_rate"), (plan.vat_rate or 0) / 100.0, numbers.FORMAT_PERCENTAGE_00),
            (t("vat_amount"), plan.vat_amount, numbers.FORMAT_NUMBER_00),
            (t("total_vat_incl"), plan.total_asset_value_vat_incl, numbers.FORMAT_NUMBER_00),
            (t("down_payment_value"), plan.down_payment_value, numbers.FORMAT_NUMBER_00),
            (t("down_payment_percent"), None if plan.down_payment_percent is None else plan.down_payment_percent / 100.0, numbers.FORMAT_PERCENTAGE_00),
            (t("net_financed_capital"), plan.net_financed_capital, numbers.FORMAT_NUMBER_00),
            (t("duration_months"), plan.duration_months, numbers.FORMAT_GENERAL),
            (t("installment_count"), plan.installment_count, numbers.FORMAT_GENERAL),
            (t("installment_amount"), plan.installment_amount, numbers.FORMAT_NUMBER_00),
            (t("periodicity"), periodicity_label(plan.periodicity), numbers.FORMAT_GENERAL),
            (t("start_date"), format_date(plan.start_date), numbers.FORMAT_GENERAL),
            (t("first_installment_date"), format_date(plan.first_installment_date), numbers.FORMAT_GENERAL),
        ]
        for label, value, fmt in rows:
            if value is None or value == "":
                continue
            ws2.append([label, value])
            ws2.cell(row=ws2.max_row, column=2).number_format = fmt
            ws2.cell(row=ws2.max_row, column=2).alignment = right
        _autosize_columns(ws2)

    _autosize_columns(ws)

    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    logger.info("Quote %s exported to %s", doc.number, path)
    return path


def _autosize_columns(ws) -> None:
    for col_cells in ws.columns:
        max_len = 0
        col_letter = col_cells[0].column_letter
        for cell in col_cells:
            if cell.value is None:
                continue
            val = str(cell.value)
            max_len = max(max_len, len(val))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 50)


__all__ = ["render_xlsx"]
