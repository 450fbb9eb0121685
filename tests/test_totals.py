import pytest

from services.quote_model import ArticleData, LineItem, QuoteData
from services.totals import (
    add_line,
    apply_article,
    compute_totals,
    move_line,
    recalculate,
    remove_line,
    round2,
    to_amount,
    update_line,
)


def _scenario_quote():
    return QuoteData(
        items=[
            LineItem(description="Licenza", quantity=3, unit_price=10, vat_rate=22),
            LineItem(description="Installazione", quantity=1, unit_price=50, vat_rate=10),
        ]
    )


def test_mixed_vat_rates():
    quote = _scenario_quote()
    recalculate(quote)
    assert [item.total for item in quote.items] == [30.0, 50.0]
    assert quote.subtotal == 80.0
    assert quote.vat_total == 11.6
    assert quote.total == 91.6


def test_removing_only_line_resets_totals():
    quote = QuoteData(items=[LineItem(description="x", quantity=8, unit_price=10, vat_rate=22)])
    recalculate(quote)
    assert quote.subtotal == 80.0

    remove_line(quote, 0)

    assert quote.items == []
    assert (quote.subtotal, quote.vat_total, quote.total) == (0.0, 0.0, 0.0)


def test_removing_a_line_keeps_the_others_correct():
    quote = _scenario_quote()
    recalculate(quote)
    remove_line(quote, 0)
    assert quote.items[0].total == 50.0
    assert (quote.subtotal, quote.vat_total, quote.total) == (50.0, 5.0, 55.0)


def test_recalculate_is_idempotent():
    quote = QuoteData(
        items=[
            LineItem(description="a", quantity=3, unit_price=0.335, vat_rate=22),
            LineItem(description="b", quantity=7, unit_price=1.115, vat_rate=4),
        ]
    )
    first = recalculate(quote)
    snapshot = [(i.quantity, i.unit_price, i.total) for i in quote.items]
    for _ in range(5):
        again = recalculate(quote)
        assert again == first
    assert [(i.quantity, i.unit_price, i.total) for i in quote.items] == snapshot


def test_round2_is_half_up():
    assert round2(2.675) == 2.68
    assert round2(1.005) == 1.01
    assert round2(0.125) == 0.13


def test_to_amount_accepts_comma_and_rejects_garbage():
    assert to_amount("12,5") == 12.5
    assert to_amount(" 3 ") == 3.0
    assert to_amount("abc") == 0.0
    assert to_amount(None) == 0.0
    assert to_amount(-4) == 0.0
    assert to_amount(float("nan")) == 0.0
    assert to_amount(True) == 0.0


def test_update_line_recomputes_totals():
    quote = _scenario_quote()
    recalculate(quote)

    update_line(quote, 0, quantity="4")
    assert quote.items[0].total == 40.0
    assert quote.subtotal == 90.0

    update_line(quote, 1, vat_rate=22)
    assert quote.vat_total == round2(40 * 0.22 + 50 * 0.22)


def test_update_line_rejects_total():
    quote = _scenario_quote()
    with pytest.raises(AttributeError):
        update_line(quote, 0, total=999)


def test_add_line_uses_default_vat():
    quote = QuoteData()
    item = add_line(quote, default_vat=10)
    assert item.quantity == 1.0
    assert item.vat_rate == 10
    assert quote.total == 0.0


def test_apply_article_fills_line_and_sets_quantity():
    quote = QuoteData(items=[LineItem()])
    article = ArticleData(id=5, code="SW-01", description="Gestionale", unit="pz", unit_price=120.0, vat=22.0)

    apply_article(quote, 0, article)

    item = quote.items[0]
    assert (item.article_id, item.code, item.description) == (5, "SW-01", "Gestionale")
    assert item.quantity == 1.0
    assert item.total == 120.0
    assert quote.total == 146.4


def test_apply_article_keeps_existing_quantity():
    quote = QuoteData(items=[LineItem(quantity=3)])
    apply_article(quote, 0, ArticleData(1, "A", "Articolo", "", 10.0, 22.0))
    assert quote.items[0].quantity == 3
    assert quote.subtotal == 30.0


def test_move_line_stays_in_bounds():
    quote = _scenario_quote()
    assert move_line(quote, 0, 1) == 1
    assert quote.items[0].description == "Installazione"
    assert move_line(quote, 1, 1) == 1
    assert move_line(quote, 0, -1) == 0


def test_compute_totals_tolerates_malformed_rows():
    totals = compute_totals([LineItem(quantity="x", unit_price=None, vat_rate="22")])
    assert (totals.subtotal, totals.vat_total, totals.total) == (0.0, 0.0, 0.0)
