from datetime import date

import pytest

from services.compositor import (
    CONTENT_WIDTH,
    Columns,
    Heading,
    ImageBlock,
    ItemTable,
    LeasingBlock,
    BankInfoBlock,
    NumberedList,
    SignatureBlock,
    TextBlock,
    TocBlock,
    TotalsBlock,
    compose,
    format_date,
    format_money,
    format_number,
)
from services.document_model import build_document
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


def _compose(quote, settings=None):
    return compose(build_document(quote, settings or SettingsData()))


def _blocks(page, kind):
    return [b for b in page.blocks if isinstance(b, kind)]


def _toc(composed):
    index = next(p for p in composed.pages if p.section == "index")
    return _blocks(index, TocBlock)[0].entries


def test_attachments_before_offer_without_products_or_contract():
    quote = QuoteData(
        attachments_position="before",
        attachments=[Attachment(title="Scheda tecnica", description="Dettagli")],
    )
    composed = _compose(quote)
    assert composed.sections == ["attachment", "index", "software", "offer"]
    assert composed.page_count == 4


def test_attachments_after_is_the_default():
    quote = QuoteData(attachments=[Attachment(title="A"), Attachment(title="B")])
    composed = _compose(quote, SettingsData(contract_pages_text="Clausola 1---Clausola 2"))
    assert composed.sections == ["index", "software", "offer", "attachment", "attachment", "contract", "contract"]
    assert [p.number for p in composed.pages] == [1, 2, 3, 4, 5, 6, 7]


def test_product_pages_follow_image_order():
    quote = QuoteData(
        product_text="I nostri prodotti",
        product_images=[
            ProductImage(src="/p1.png", caption="Server"),
            ProductImage(src="null"),
            ProductImage(src="/p2.png"),
        ],
    )
    composed = _compose(quote)

    products = [p for p in composed.pages if p.section == "products"]
    assert len(products) == 2
    assert [_blocks(p, ImageBlock)[0].src for p in products] == ["/p1.png", "/p2.png"]

    first, second = products
    assert _blocks(first, Heading)[0].text == "Descrizione Prodotti"
    assert [b.text for b in _blocks(first, TextBlock)] == ["I nostri prodotti", "Server"]
    assert _blocks(second, Heading) == []
    assert _blocks(second, TextBlock) == []


def test_products_section_disappears_without_images():
    quote = QuoteData(product_text="Testo senza immagini", product_images=[ProductImage(src="undefined")])
    composed = _compose(quote)

    assert "products" not in composed.sections
    assert "Descrizione Prodotti" not in [e.title for e in _toc(composed)]
    anchors = [b.anchor for p in composed.pages for b in _blocks(p, Heading)]
    assert "products" not in anchors


def test_toc_points_at_pages():
    quote = QuoteData(
        premise_text="Premessa",
        attachments_position="before",
        attachments=[Attachment(title="A")],
        product_images=[ProductImage(src="/p1.png"), ProductImage(src="/p2.png")],
    )
    composed = _compose(quote, SettingsData(default_target_image="/target.png", contract_pages_text="Contratto"))

    entries = {e.anchor: e.page for e in _toc(composed)}
    assert entries == {
        "attachments": 1,
        "premise": 2,
        "software": 3,
        "target": 3,
        "products": 4,
        "offer": 6,
        "contract": 7,
    }


def test_premise_only_with_content():
    composed = _compose(QuoteData())
    index = composed.pages[0]
    assert [h.anchor for h in _blocks(index, Heading)] == ["index"]

    composed = _compose(QuoteData(), SettingsData(default_hardware_image="/hw.png"))
    index = composed.pages[0]
    assert [h.anchor for h in _blocks(index, Heading)] == ["index", "premise"]
    assert _blocks(index, ImageBlock)[0].src == "/hw.png"


def test_software_page_scales_image():
    quote = QuoteData(software_images=["/sw.png"], software_image_scale=50)
    page = _compose(quote).pages[1]
    image = _blocks(page, ImageBlock)[0]
    assert image.width == pytest.approx(CONTENT_WIDTH / 2)
    assert _blocks(page, TextBlock)[0].text.startswith("Il software fornito")


def test_full_bleed_attachment_is_undecorated_but_numbered():
    quote = QuoteData(
        attachments=[
            Attachment(image="/full.png", layout=AttachmentLayout(full_page_image=True)),
            Attachment(title="Normale"),
        ]
    )
    composed = _compose(quote)
    bleed, normal = [p for p in composed.pages if p.section == "attachment"]
    assert bleed.full_bleed and not bleed.decorated
    assert bleed.number == 4
    assert normal.decorated and not normal.full_bleed
    assert composed.page_label(bleed) == "Pagina 4 di 5"


def test_side_by_side_attachment():
    quote = QuoteData(
        attachments=[
            Attachment(title="T", description="Testo", image="/a.png", layout=AttachmentLayout(image_position="right"))
        ]
    )
    page = _compose(quote).pages[-1]
    columns = _blocks(page, Columns)[0]
    assert isinstance(columns.left[0], TextBlock)
    assert isinstance(columns.right[0], ImageBlock)


def test_image_below_text():
    quote = QuoteData(
        attachments=[Attachment(description="Testo", image="/a.png", layout=AttachmentLayout(image_position="bottom"))]
    )
    page = _compose(quote).pages[-1]
    assert [type(b) for b in page.blocks] == [TextBlock, ImageBlock]


def test_offer_page_blocks():
    quote = QuoteData(
        customer=CustomerSnapshot(name="ACME"),
        items=[LineItem(code="A", description="Articolo", quantity=2, unit_price=1234.5, total=2469.0)],
        subtotal=2469.0,
        vat_total=543.18,
        total=3012.18,
        leasing=LeasingPlan(asset_value=10000, vat_rate=22, vat_amount=2200, total_asset_value_vat_incl=12200),
        supply_conditions=["Consegna in 30 giorni", "  "],
    )
    settings = SettingsData(bank_info="IBAN IT00", signature_image="/firma.png")
    offer = next(p for p in _compose(quote, settings).pages if p.section == "offer")

    row = _blocks(offer, ItemTable)[0].rows[0]
    assert (row.quantity, row.unit_price, row.total) == ("2", "€ 1.234,50", "€ 2.469,00")
    assert _blocks(offer, TotalsBlock)[0].total == "€ 3.012,18"
    leasing = _blocks(offer, LeasingBlock)[0]
    assert ("Totale bene IVA inclusa", "€ 12.200,00") in leasing.left
    assert _blocks(offer, BankInfoBlock)[0].text == "IBAN IT00"
    assert _blocks(offer, NumberedList)[0].items == ("Consegna in 30 giorni",)
    assert _blocks(offer, SignatureBlock)[0].image == "/firma.png"


def test_offer_page_hides_optional_blocks():
    quote = QuoteData(show_totals=False, show_bank_info=False)
    offer = next(p for p in _compose(quote, SettingsData(bank_info="IBAN")).pages if p.section == "offer")
    assert _blocks(offer, TotalsBlock) == []
    assert _blocks(offer, LeasingBlock) == []
    assert _blocks(offer, BankInfoBlock) == []
    assert _blocks(offer, NumberedList) == []
    assert _blocks(offer, SignatureBlock)[0].image is None


def test_malformed_rows_render_as_zero():
    quote = QuoteData(items=[LineItem(code=None, description=None, quantity="abc", unit_price=None, total=None)])
    offer = next(p for p in _compose(quote).pages if p.section == "offer")
    row = _blocks(offer, ItemTable)[0].rows[0]
    assert (row.code, row.description, row.quantity, row.unit_price, row.total) == ("", "", "0", "€ 0,00", "€ 0,00")


def test_decoration_uses_display_number():
    composed = _compose(QuoteData(date=date(2024, 5, 3)), SettingsData(company_name="Rossi Srl", quote_number_prefix="2024-", next_quote_number=7))
    assert "2024-7" in composed.decoration.number_text
    assert "03/05/2024" in composed.decoration.date_text
    assert composed.decoration.company_name == "Rossi Srl"


def test_formatting_helpers():
    assert format_money(0) == "€ 0,00"
    assert format_money(1234567.891) == "€ 1.234.567,89"
    assert format_number(2.5) == "2,5"
    assert format_number(3) == "3"
    assert format_date(None) == ""


def test_full_bleed_page_keeps_content_fallback():
    quote = QuoteData(
        attachments=[
            Attachment(title="Scheda", description="Testo", image="/full.png", layout=AttachmentLayout(full_page_image=True))
        ]
    )
    bleed = _compose(quote).pages[-1]
    assert [type(b) for b in bleed.blocks] == [ImageBlock]
    assert [type(b) for b in bleed.fallback] == [Heading, ImageBlock, TextBlock]
