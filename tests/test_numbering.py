import pytest

from db.models import Quote
from db.session import get_session
from db.store import get_settings
from services.errors import QuoteValidationError
from services.numbering import highest_assigned, reconcile_counter, save_quote, validate_quote
from services.quote_model import (
    Attachment,
    AttachmentLayout,
    CustomerSnapshot,
    LeasingPlan,
    LineItem,
    QuoteData,
)
from services.reference_data import fetch_quote, fetch_settings


def _set_counter(ctx, prefix, number):
    with get_session() as session:
        settings = get_settings(session, ctx.user_id)
        settings.quote_number_prefix = prefix
        settings.next_quote_number = number
        session.commit()


def _quote(**kwargs):
    values = {
        "customer": CustomerSnapshot(name="ACME Spa"),
        "items": [LineItem(description="Licenza", quantity=3, unit_price=10, vat_rate=22)],
    }
    values.update(kwargs)
    return QuoteData(**values)


def test_new_quote_takes_next_number(ctx):
    _set_counter(ctx, "2024-", 7)

    saved = save_quote(ctx, _quote())

    assert saved.id is not None
    assert saved.number == "2024-7"
    assert fetch_settings(ctx).next_quote_number == 8


def test_saved_quote_has_recomputed_totals(ctx):
    saved = save_quote(
        ctx,
        _quote(
            items=[
                LineItem(description="a", quantity=3, unit_price=10, vat_rate=22),
                LineItem(description="b", quantity=1, unit_price=50, vat_rate=10),
            ],
            leasing=LeasingPlan(asset_value=10000),
        ),
    )
    stored = fetch_quote(ctx, saved.id)
    assert (stored.subtotal, stored.vat_total, stored.total) == (80.0, 11.6, 91.6)
    assert [item.total for item in stored.items] == [30.0, 50.0]
    assert stored.leasing.vat_rate == 22
    assert stored.leasing.total_asset_value_vat_incl == 12200.0


def test_typed_number_is_kept_and_counter_still_moves(ctx):
    _set_counter(ctx, "P", 3)
    saved = save_quote(ctx, _quote(number=" SPECIALE-1 "))
    assert saved.number == "SPECIALE-1"
    assert fetch_settings(ctx).next_quote_number == 4


def test_update_keeps_number_and_counter(ctx):
    _set_counter(ctx, "2024-", 1)
    saved = save_quote(ctx, _quote())
    assert saved.number == "2024-1"

    saved.customer = CustomerSnapshot(name="Nuovo Cliente")
    saved.number = ""
    updated = save_quote(ctx, saved)

    assert updated.id == saved.id
    assert updated.number == "2024-1"
    assert updated.customer.name == "Nuovo Cliente"
    assert fetch_settings(ctx).next_quote_number == 2


def test_update_accepts_edited_number(ctx):
    saved = save_quote(ctx, _quote())
    saved.number = "X-99"
    assert save_quote(ctx, saved).number == "X-99"


def test_update_of_missing_quote(ctx):
    with pytest.raises(LookupError):
        save_quote(ctx, _quote(id=12345))


def test_validation_blocks_save(ctx):
    quote = QuoteData(customer=CustomerSnapshot(name="  "), items=[LineItem(description="ok"), LineItem()])
    with pytest.raises(QuoteValidationError) as info:
        save_quote(ctx, quote)
    assert set(info.value.errors) == {"customer_name", "items.1.description"}
    assert fetch_settings(ctx).next_quote_number == 1
    with get_session() as session:
        assert session.query(Quote).count() == 0


def test_validate_accepts_complete_quote():
    validate_quote(_quote())


def test_attachment_defaults_are_remembered(ctx):
    layout = AttachmentLayout(image_position="left", image_height=180)
    save_quote(ctx, _quote(attachments_position="before", attachments=[Attachment(title="A", layout=layout)]))

    settings = fetch_settings(ctx)
    assert settings.attachments_position == "before"
    assert settings.attachment_layout.image_position == "left"
    assert settings.attachment_layout.image_height == 180


def test_new_quote_inherits_narrative_fields(ctx):
    save_quote(ctx, _quote(premise_text="Premessa aziendale", software_images=["/sw.png"]))
    second = save_quote(ctx, _quote(software_text="Testo proprio"))

    stored = fetch_quote(ctx, second.id)
    assert stored.premise_text == "Premessa aziendale"
    assert stored.software_images == ["/sw.png"]
    assert stored.software_text == "Testo proprio"


def test_counter_skips_numbers_already_used(ctx):
    _set_counter(ctx, "2024-", 1)
    save_quote(ctx, _quote(number="2024-5"))
    _set_counter(ctx, "2024-", 2)

    saved = save_quote(ctx, _quote())

    assert saved.number == "2024-6"
    assert fetch_settings(ctx).next_quote_number == 7


def test_reconcile_counter(ctx):
    save_quote(ctx, _quote(number="2024-12"))
    _set_counter(ctx, "2024-", 3)
    assert reconcile_counter(ctx) == 13
    _set_counter(ctx, "2024-", 40)
    assert reconcile_counter(ctx) == 40


def test_highest_assigned():
    numbers = ["2024-3", "2024-11", "2023-50", "2024-bozza", "", "2024-"]
    assert highest_assigned(numbers, "2024-") == 11
    assert highest_assigned(numbers, "2025-") is None
    assert highest_assigned(["7", "12"], "") == 12
