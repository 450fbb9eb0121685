from __future__ import annotations

from typing import Any, Optional

from services.quote_model import LeasingPlan, QuoteData
from services.totals import round2, to_amount, to_vat_rate


DEFAULT_LEASING_VAT_RATE = 22.0

PERIODICITY_LABELS = {
    "monthly": "Mensile",
    "quarterly": "Trimestrale",
}

KIND_LABELS = {
    "leasing": "Leasing",
    "financing": "Finanziamento",
}


def periodicity_label(value: Optional[str]) -> str:
    return PERIODICITY_LABELS.get(value or "", PERIODICITY_LABELS["monthly"])


def kind_label(value: Optional[str]) -> str:
    return KIND_LABELS.get(value or "", KIND_LABELS["leasing"])


def recalculate_leasing(plan: LeasingPlan) -> LeasingPlan:
    plan.asset_value = to_amount(plan.asset_value)
    rate = to_vat_rate(plan.vat_rate) if plan.vat_rate is not None else DEFAULT_LEASING_VAT_RATE
    plan.vat_rate = rate
    plan.vat_amount = round2(plan.asset_value * rate / 100)
    plan.total_asset_value_vat_incl = round2(plan.asset_value + plan.vat_amount)
    return plan


def activate_leasing(quote: QuoteData, kind: str = "leasing") -> LeasingPlan:
    """Attach a plan to the quote if it has none; the VAT rate starts at 22."""
    if quote.leasing is None:
        quote.leasing = LeasingPlan(kind=kind if kind in KIND_LABELS else "leasing")
    if quote.leasing.vat_rate is None:
        quote.leasing.vat_rate = DEFAULT_LEASING_VAT_RATE
    return recalculate_leasing(quote.leasing)


def update_leasing(quote: QuoteData, **changes: Any) -> LeasingPlan:
    plan = quote.leasing if quote.leasing is not None else activate_leasing(quote)
    for name, value in changes.items():
        if name in ("vat_amount", "total_asset_value_vat_incl") or not hasattr(plan, name):
            raise AttributeError(f"LeasingPlan field not editable: {name}")
        setattr(plan, name, value)
    return recalculate_leasing(plan)


def deactivate_leasing(quote: QuoteData) -> None:
    quote.leasing = None


__all__ = [
    "DEFAULT_LEASING_VAT_RATE",
    "PERIODICITY_LABELS",
    "KIND_LABELS",
    "periodicity_label",
    "kind_label",
    "recalculate_leasing",
    "activate_leasing",
    "update_leasing",
    "deactivate_leasing",
]
