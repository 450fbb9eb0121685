import base64
from io import BytesIO

import pytest
from PIL import Image as PILImage
from openpyxl import load_workbook
from pypdf import PdfReader

from services.compositor import TextBlock, compose
from services.document_model import build_document
from services.exporter import (
    build_renderable,
    export_filename,
    export_quote_pdf,
    export_quote_xlsx,
    quote_pdf_bytes,
)
from services.exporters_pdf import _BlockRenderer, crop_to_ratio, load_image, render_pdf_bytes
from services.numbering import save_quote
from services.quote_model import (
    Attachment,
    AttachmentLayout,
    CustomerSnapshot,
    LeasingPlan,
    LineItem,
    ProductImage,
    QuoteData,
    SettingsData,
)


def _png_data_url(width: int = 4, height: int = 2) -> str:
    buffer = BytesIO()
    PILImage.new("RGB", (width, height), "red").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


PNG = _png_data_url()


def _saved(ctx, **kwargs):
    values = {
        "customer": CustomerSnapshot(name="ACME Spa", address="Via Milano 3"),
        "items": [
            LineItem(code="L1", description="Licenza", quantity=3, unit_price=10, vat_rate=22),
            LineItem(code="I1", description="Installazione", quantity=1, unit_price=50, vat_rate=10),
        ],
    }
    values.update(kwargs)
    return save_quote(ctx, QuoteData(**values))


def _page_count(data: bytes) -> int:
    return len(PdfReader(BytesIO(data)).pages)


@pytest.mark.parametrize(
    "number, expected",
    [
        ("2024-7", "Preventivo_2024-7.pdf"),
        ("A/15 bis", "Preventivo_A_15_bis.pdf"),
        ("", "Preventivo_bozza.pdf"),
        ("   ", "Preventivo_bozza.pdf"),
    ],
)
def test_export_filename(number, expected):
    assert export_filename(number, "pdf") == expected


def test_export_filename_extension():
    assert export_filename("7", ".xlsx") == "Preventivo_7.xlsx"


def test_one_pdf_page_per_composed_page():
    quote = QuoteData(
        customer=CustomerSnapshot(name="ACME"),
        items=[LineItem(description="Riga", quantity=1, unit_price=10, vat_rate=22, total=10)],
        attachments_position="before",
        attachments=[Attachment(title="Scheda", description="Descrizione allegato " * 20)],
        product_images=[ProductImage(src=PNG, caption="Pixel"), ProductImage(src=PNG)],
        leasing=LeasingPlan(asset_value=10000, vat_rate=22, vat_amount=2200, total_asset_value_vat_incl=12200),
        supply_conditions=["Consegna in 30 giorni"] * 5,
    )
    settings = SettingsData(company_name="Rossi Srl", contract_pages_text="Clausola uno\n---\nClausola due")
    composed = compose(build_document(quote, settings))

    data = render_pdf_bytes(composed)

    assert data.startswith(b"%PDF")
    assert composed.page_count == 8
    assert _page_count(data) == composed.page_count


def test_long_text_still_fits_one_page():
    quote = QuoteData(premise_text="Premessa molto lunga. " * 600)
    composed = compose(build_document(quote, SettingsData()))
    assert _page_count(render_pdf_bytes(composed)) == composed.page_count == 3


def test_full_bleed_page_is_rendered():
    quote = QuoteData(attachments=[Attachment(image=PNG, layout=AttachmentLayout(full_page_image=True))])
    composed = compose(build_document(quote, SettingsData()))
    assert composed.pages[-1].full_bleed
    assert _page_count(render_pdf_bytes(composed)) == 4


def test_page_counter_in_footer():
    composed = compose(build_document(QuoteData(number="2024-1"), SettingsData(company_name="Rossi Srl")))
    reader = PdfReader(BytesIO(render_pdf_bytes(composed)))
    text = reader.pages[0].extract_text()
    assert "Pagina 1 di 3" in text
    assert "Rossi Srl" in text


def test_broken_images_are_skipped():
    assert load_image("null") is None
    assert load_image("blob:preview") is None
    assert load_image("data:image/png;base64,bm90IGFuIGltYWdl") is None
    assert load_image("/missing/file.png") is None
    assert load_image(PNG).size == (4, 2)

    quote = QuoteData(product_images=[ProductImage(src="data:image/png;base64,bm90IGFuIGltYWdl")])
    composed = compose(build_document(quote, SettingsData()))
    assert _page_count(render_pdf_bytes(composed)) == composed.page_count == 4


def test_crop_to_ratio():
    image = load_image(PNG).resize((200, 100))
    assert crop_to_ratio(image, 1.0).size == (100, 100)
    assert crop_to_ratio(image, 4.0).size == (200, 50)


def test_export_pdf_to_exports_dir(ctx, portable_home):
    saved = _saved(ctx)
    path = export_quote_pdf(ctx, saved.id)

    assert path == portable_home / "exports" / f"Preventivo_{saved.number}.pdf"
    assert _page_count(path.read_bytes()) == 3


def test_export_pdf_to_chosen_file(ctx, tmp_path):
    saved = _saved(ctx)
    target = tmp_path / "out" / "copia.pdf"
    assert export_quote_pdf(ctx, saved.id, target) == target
    assert target.exists()


def test_preview_bytes_match_export(ctx):
    saved = _saved(ctx)
    data = quote_pdf_bytes(build_renderable(ctx, saved.id))
    assert _page_count(data) == 3


def test_export_xlsx(ctx, portable_home):
    saved = _saved(ctx, leasing=LeasingPlan(asset_value=10000), supply_conditions=["Garanzia 24 mesi"])
    path = export_quote_xlsx(ctx, saved.id)

    assert path.name == f"Preventivo_{saved.number}.xlsx"
    wb = load_workbook(path)
    ws = wb.worksheets[0]
    values = [cell for row in ws.iter_rows(values_only=True) for cell in row if cell is not None]
    assert saved.number in ws["A1"].value
    assert "Licenza" in values
    assert "ACME Spa" in values
    assert "Garanzia 24 mesi" in values
    assert 91.6 in values
    leasing = wb.worksheets[1]
    assert leasing["A1"].value == "Leasing"
    assert 12200.0 in [row[1] for row in leasing.iter_rows(min_row=2, values_only=True)]


def test_export_missing_quote(ctx):
    with pytest.raises(LookupError):
        export_quote_pdf(ctx, 999)


def test_short_hex_description_color_renders_grey():
    quote = QuoteData(attachments=[Attachment(description="Testo", layout=AttachmentLayout(description_color="#333"))])
    page = compose(build_document(quote, SettingsData())).pages[-1]
    block = next(b for b in page.blocks if isinstance(b, TextBlock))

    color = _BlockRenderer().text(block).style.textColor

    assert color.rgb() == pytest.approx((0.2, 0.2, 0.2))


def test_unloadable_full_page_image_uses_content_layout():
    quote = QuoteData(
        attachments=[
            Attachment(
                title="Scheda tecnica",
                description="Dettagli",
                image="blob:anteprima",
                layout=AttachmentLayout(full_page_image=True),
            )
        ]
    )
    composed = compose(build_document(quote, SettingsData(company_name="Rossi Srl")))
    assert composed.pages[-1].full_bleed

    reader = PdfReader(BytesIO(render_pdf_bytes(composed)))
    text = reader.pages[-1].extract_text()

    assert len(reader.pages) == 4
    assert "Scheda tecnica" in text
    assert "Dettagli" in text
    assert "Pagina 4 di 4" in text
