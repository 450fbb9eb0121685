import pytest

from services.quote_model import LeasingPlan, QuoteData
from services.leasing import (
    DEFAULT_LEASING_VAT_RATE,
    activate_leasing,
    deactivate_leasing,
    kind_label,
    periodicity_label,
    recalculate_leasing,
    update_leasing,
)


def test_asset_value_with_vat():
    plan = recalculate_leasing(LeasingPlan(asset_value=10000, vat_rate=22))
    assert plan.vat_amount == 2200.0
    assert plan.total_asset_value_vat_incl == 12200.0


def test_activation_defaults_vat_to_22():
    quote = QuoteData()
    plan = activate_leasing(quote)
    assert quote.leasing is plan
    assert plan.vat_rate == DEFAULT_LEASING_VAT_RATE == 22


def test_activation_keeps_existing_plan():
    quote = QuoteData(leasing=LeasingPlan(asset_value=500, vat_rate=10))
    plan = activate_leasing(quote)
    assert plan.vat_rate == 10
    assert plan.vat_amount == 50.0


def test_update_recomputes_after_each_edit():
    quote = QuoteData()
    activate_leasing(quote)

    update_leasing(quote, asset_value="1234,5")
    assert quote.leasing.asset_value == 1234.5
    assert quote.leasing.vat_amount == 271.59
    assert quote.leasing.total_asset_value_vat_incl == 1506.09

    update_leasing(quote, vat_rate=4)
    assert quote.leasing.vat_amount == 49.38
    assert quote.leasing.total_asset_value_vat_incl == 1283.88


def test_user_fields_are_not_cross_checked():
    quote = QuoteData()
    update_leasing(quote, asset_value=10000, installment_count=12, installment_amount=1, net_financed_capital=5)
    assert quote.leasing.installment_count == 12
    assert quote.leasing.installment_amount == 1
    assert quote.leasing.net_financed_capital == 5


@pytest.mark.parametrize("field", ["vat_amount", "total_asset_value_vat_incl", "unknown"])
def test_derived_fields_cannot_be_set(field):
    quote = QuoteData()
    with pytest.raises(AttributeError):
        update_leasing(quote, **{field: 1})


def test_deactivate_removes_plan():
    quote = QuoteData()
    activate_leasing(quote)
    deactivate_leasing(quote)
    assert quote.leasing is None


def test_plan_round_trips_through_dict():
    plan = LeasingPlan.from_dict({"asset_value": 100, "start_date": "2024-03-01", "ignored": True})
    assert plan.start_date.isoformat() == "2024-03-01"
    assert plan.to_dict()["start_date"] == "2024-03-01"
    assert LeasingPlan.from_dict(None) is None


def test_labels_fall_back():
    assert periodicity_label("quarterly") == "Trimestrale"
    assert periodicity_label(None) == "Mensile"
    assert kind_label("financing") == "Finanziamento"
    assert kind_label("other") == "Leasing"
