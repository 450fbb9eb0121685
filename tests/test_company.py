from dataclasses import replace

from services.company import load_company_settings, save_company_settings
from services.numbering import save_quote
from services.quote_model import CustomerSnapshot, LineItem, QuoteData


def test_save_and_load_settings(ctx):
    data = replace(
        load_company_settings(ctx),
        company_name="  Rossi Impianti Srl ",
        quote_number_prefix="P-",
        default_vat="10,5",
        logo_data="null",
        logo_url="https://example.com/logo.png",
        default_software_image="/sw.png",
        default_software_image_scale=-3,
        default_product_image_max_height="400",
        attachments_position="sideways",
        contract_pages_text="Uno---Due",
    )

    saved = save_company_settings(ctx, data)
    loaded = load_company_settings(ctx)

    assert saved == loaded
    assert loaded.company_name == "Rossi Impianti Srl"
    assert loaded.quote_number_prefix == "P-"
    assert loaded.default_vat == 10.5
    assert loaded.logo_data is None
    assert loaded.logo_url == "https://example.com/logo.png"
    assert loaded.default_software_image == "/sw.png"
    assert loaded.default_software_image_scale is None
    assert loaded.default_product_image_max_height == 400.0
    assert loaded.attachments_position is None
    assert loaded.contract_pages_text == "Uno---Due"


def test_counter_is_not_written_by_settings_form(ctx):
    save_quote(ctx, QuoteData(customer=CustomerSnapshot(name="ACME"), items=[LineItem(description="x")]))
    stale = replace(load_company_settings(ctx), next_quote_number=1)

    save_company_settings(ctx, stale)

    assert load_company_settings(ctx).next_quote_number == 2


def test_new_prefix_drives_next_number(ctx):
    save_company_settings(ctx, replace(load_company_settings(ctx), quote_number_prefix="2025/"))
    saved = save_quote(ctx, QuoteData(customer=CustomerSnapshot(name="ACME"), items=[LineItem(description="x")]))
    assert saved.number == "2025/1"
