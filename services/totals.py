from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from services.quote_model import ArticleData, LineItem, QuoteData


_CENT = Decimal("0.01")


def round2(value: Any) -> float:
    """Round half-up to two decimals through ``Decimal``.

    Going through ``str`` keeps values such as 2.675 from rounding down
    because of their binary representation.
    """
    number = to_amount(value)
    return float(Decimal(str(number)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_amount(value: Any) -> float:
    """Coerce a user-entered quantity, price or rate to a finite number >= 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, str):
            value = value.strip().replace(",", ".")
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def to_vat_rate(value: Any) -> float:
    return min(to_amount(value), 100.0)


def line_total(quantity: Any, unit_price: Any) -> float:
    return round2(to_amount(quantity) * to_amount(unit_price))


@dataclass(frozen=True)
class Totals:
    subtotal: float = 0.0
    vat_total: float = 0.0
    total: float = 0.0


def compute_totals(items: Iterable[LineItem]) -> Totals:
    subtotal = 0.0
    vat_total = 0.0
    for item in items:
        amount = line_total(item.quantity, item.unit_price)
        subtotal += amount
        vat_total += amount * to_vat_rate(item.vat_rate) / 100
    subtotal = round2(subtotal)
    vat_total = round2(vat_total)
    return Totals(subtotal=subtotal, vat_total=vat_total, total=round2(subtotal + vat_total))


def recalculate(quote: QuoteData) -> Totals:
    """Normalize every line and store rounded line and quote totals in place."""
    for item in quote.items:
        item.quantity = to_amount(item.quantity)
        item.unit_price = to_amount(item.unit_price)
        item.vat_rate = to_vat_rate(item.vat_rate)
        item.total = line_total(item.quantity, item.unit_price)
    totals = compute_totals(quote.items)
    quote.subtotal = totals.subtotal
    quote.vat_total = totals.vat_total
    quote.total = totals.total
    return totals


def add_line(quote: QuoteData, item: Optional[LineItem] = None, default_vat: float = 22.0) -> LineItem:
    if item is None:
        item = LineItem(quantity=1.0, vat_rate=default_vat)
    quote.items.append(item)
    recalculate(quote)
    return item


def remove_line(quote: QuoteData, index: int) -> LineItem:
    item = quote.items.pop(index)
    recalculate(quote)
    return item


def update_line(quote: QuoteData, index: int, **changes: Any) -> LineItem:
    """Apply field edits to one line; ``total`` is derived and cannot be set."""
    item = quote.items[index]
    for name, value in changes.items():
        if name == "total" or not hasattr(item, name):
            raise AttributeError(f"LineItem field not editable: {name}")
        setattr(item, name, value)
    recalculate(quote)
    return item


def move_line(quote: QuoteData, index: int, offset: int) -> int:
    target = index + offset
    if index < 0 or index >= len(quote.items) or target < 0 or target >= len(quote.items):
        return index
    quote.items[index], quote.items[target] = quote.items[target], quote.items[index]
    return target


def apply_article(quote: QuoteData, index: int, article: ArticleData) -> LineItem:
    """Autofill a line from a catalog article; an unset quantity becomes 1."""
    item = quote.items[index]
    item.article_id = article.id
    item.code = article.code
    item.description = article.description
    item.unit_price = article.unit_price
    item.vat_rate = article.vat
    if to_amount(item.quantity) <= 0:
        item.quantity = 1.0
    recalculate(quote)
    return item


__all__ = [
    "Totals",
    "round2",
    "to_amount",
    "to_vat_rate",
    "line_total",
    "compute_totals",
    "recalculate",
    "add_line",
    "remove_line",
    "update_line",
    "move_line",
    "apply_article",
]
