import pytest

from services.document_model import (
    DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT,
    SOFTWARE_FALLBACK_TEXT,
    build_document,
    caption_from_line,
    inherit_defaults,
    resolve,
    resolve_attachment,
    resolve_display_number,
    split_contract_pages,
)
from services.quote_model import (
    Attachment,
    AttachmentLayout,
    LineItem,
    ProductImage,
    QuoteData,
    SettingsData,
)


def test_resolve_takes_first_set_value():
    assert resolve("quote", "last", "settings", "literal") == "quote"
    assert resolve(None, "last", "settings", "literal") == "last"
    assert resolve(None, None, "settings", "literal") == "settings"
    assert resolve(None, None, None, "literal") == "literal"


def test_resolve_uses_predicate():
    def non_blank(v):
        return isinstance(v, str) and bool(v.strip())

    assert resolve("  ", "", "x", "y", is_set=non_blank) == "x"


def test_display_number_prefers_explicit_number():
    settings = SettingsData(quote_number_prefix="2024-", next_quote_number=7)
    assert resolve_display_number("  A/15 ", settings) == "A/15"
    assert resolve_display_number("", settings) == "2024-7"
    assert resolve_display_number(None, settings) == "2024-7"
    assert resolve_display_number("   ", settings) == "2024-7"


def test_fields_fall_back_independently():
    settings = SettingsData(default_software_image="/settings-sw.png", default_target_image="/settings-target.png")
    last = QuoteData(id=1, premise_text="Premessa precedente", software_text="Software precedente")
    quote = QuoteData(software_text="Software esplicito")

    doc = build_document(quote, settings, last)

    assert doc.software_text == "Software esplicito"
    assert doc.premise_text == "Premessa precedente"
    assert doc.software_image.src == "/settings-sw.png"
    assert doc.target_image.src == "/settings-target.png"


def test_quote_image_wins_over_settings_default():
    settings = SettingsData(default_software_image="/settings-sw.png", default_software_image_scale=40)
    quote = QuoteData(software_images=["null", "/quote-sw.png"], software_image_scale=75)
    doc = build_document(quote, settings)
    assert doc.software_image.src == "/quote-sw.png"
    assert doc.software_image.scale == 75


def test_last_quote_ignored_for_saved_quotes():
    last = QuoteData(id=1, premise_text="Premessa precedente")
    quote = QuoteData(id=2)
    doc = build_document(quote, SettingsData(), last)
    assert doc.premise_text == ""


def test_literal_fallbacks():
    doc = build_document(QuoteData(), SettingsData())
    assert doc.software_text == SOFTWARE_FALLBACK_TEXT
    assert doc.software_image is None
    assert doc.target_image is None
    assert doc.hardware_image is None
    assert doc.product_image_scale == 100.0
    assert doc.product_image_max_height == DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT
    assert doc.product_images_fit == "contain"
    assert doc.attachments_position == "after"
    assert doc.contract_pages == []


def test_invalid_layout_numbers_use_defaults():
    settings = SettingsData(default_product_image_scale=-10)
    quote = QuoteData(product_image_scale="abc", product_image_max_height=float("nan"))
    doc = build_document(quote, settings)
    assert doc.product_image_scale == 100.0
    assert doc.product_image_max_height == DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT


def test_invalid_product_images_are_dropped():
    quote = QuoteData(
        product_images=[
            ProductImage(src="undefined", caption="a"),
            ProductImage(src="/p1.png", caption=" Primo "),
            ProductImage(src="", caption="b"),
            ProductImage(src="/p2.png"),
        ]
    )
    doc = build_document(quote, SettingsData())
    assert [(p.src, p.caption) for p in doc.product_images] == [("/p1.png", "Primo"), ("/p2.png", "")]


def test_hardware_image_comes_from_settings():
    settings = SettingsData(default_hardware_image="/hw.png", default_hardware_image_height=150)
    doc = build_document(QuoteData(), settings)
    assert doc.hardware_image.src == "/hw.png"
    assert doc.hardware_image.max_height == 150.0


def test_attachments_position_order():
    settings = SettingsData(attachments_position="before")
    assert build_document(QuoteData(), settings).attachments_position == "before"
    assert build_document(QuoteData(attachments_position="after"), settings).attachments_position == "after"
    assert build_document(QuoteData(attachments_position="middle"), SettingsData()).attachments_position == "after"


def test_attachment_layout_defaults_from_settings():
    settings = SettingsData(attachment_layout=AttachmentLayout(image_position="left", image_height=200))
    att = Attachment(title=" Scheda ", image="/a.png", layout=AttachmentLayout(image_height=120, description_color="red"))

    resolved = resolve_attachment(att, settings)

    assert resolved.title == "Scheda"
    assert resolved.image_position == "left"
    assert resolved.image_height == 120.0
    assert resolved.description_color == "#333333"
    assert resolved.show_title is True
    assert resolved.full_page_image is False


@pytest.mark.parametrize(
    "color, expected",
    [("#333", "#333333"), (" #aBc ", "#aaBBcc"), ("#1a2b3c", "#1a2b3c")],
)
def test_short_hex_colors_are_expanded(color, expected):
    att = Attachment(description="Testo", layout=AttachmentLayout(description_color=color))
    assert resolve_attachment(att, SettingsData()).description_color == expected


def test_full_page_needs_an_image():
    layout = AttachmentLayout(full_page_image=True)
    assert resolve_attachment(Attachment(image="null", layout=layout), SettingsData()).full_page_image is False
    assert resolve_attachment(Attachment(image="/a.png", layout=layout), SettingsData()).full_page_image is True


def test_inherit_defaults_only_fills_new_quotes():
    last = QuoteData(id=9, premise_text="Premessa", software_images=["/sw.png"], product_text="Prodotti")
    new = inherit_defaults(QuoteData(product_text="Mio testo"), last)
    assert new.premise_text == "Premessa"
    assert new.software_images == ["/sw.png"]
    assert new.software_images is not last.software_images
    assert new.product_text == "Mio testo"

    saved = inherit_defaults(QuoteData(id=3), last)
    assert saved.premise_text is None


def test_split_contract_pages():
    text = "Articolo 1\n---\n\n---\n  Articolo 2  \n---"
    assert split_contract_pages(text) == ["Articolo 1", "Articolo 2"]
    assert split_contract_pages("") == []
    assert split_contract_pages(None) == []


def test_caption_from_line():
    assert caption_from_line(LineItem(code="SW-1", description="Gestionale")) == "SW-1 - Gestionale"
    assert caption_from_line(LineItem(description="Solo descrizione")) == "Solo descrizione"
