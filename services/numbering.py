from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import CompanySettings, Quote
from db.session import get_session
from db.store import assigned_numbers, get_quote, get_settings, last_created_quote
from services.context import SessionContext
from services.document_model import has_text, inherit_defaults, resolve_display_number
from services.errors import PersistenceError, QuoteValidationError
from services.leasing import recalculate_leasing
from services.quote_model import (
    ATTACHMENTS_POSITIONS,
    QuoteData,
    fill_quote_record,
    quote_from_record,
    settings_from_record,
)
from services.totals import recalculate
from ui.i18n import t


logger = logging.getLogger("preventivi.numbering")


def next_display_number(settings: CompanySettings) -> str:
    return resolve_display_number(None, settings_from_record(settings))


def validate_quote(quote: QuoteData) -> None:
    errors: dict[str, str] = {}
    if not has_text(quote.customer.name):
        errors["customer_name"] = t("customer_required")
    for index, item in enumerate(quote.items):
        if not has_text(item.description):
            errors[f"items.{index}.description"] = t("line_description_required", row=index + 1)
    if errors:
        raise QuoteValidationError(errors)


def save_quote(ctx: SessionContext, quote: QuoteData) -> QuoteData:
    """Insert or update ``quote`` and return the stored version.

    A new quote takes the next display number unless one was typed in; the
    insert, the counter increment and the attachment defaults are committed
    in a single transaction.
    """
    validate_quote(quote)
    recalculate(quote)
    if quote.leasing is not None:
        recalculate_leasing(quote.leasing)

    with get_session() as session:
        try:
            if quote.is_new:
                record = _insert_quote(session, ctx, quote)
            else:
                record = _update_quote(session, ctx, quote)
            session.flush()
            saved = quote_from_record(record)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Saving quote %s failed", quote.number or "(new)")
            raise PersistenceError(str(exc)) from exc

    logger.info("Saved quote %s (id=%s) for user %s", saved.number, saved.id, ctx.user_id)
    return saved


def _insert_quote(session: Session, ctx: SessionContext, quote: QuoteData) -> Quote:
    settings = get_settings(session, ctx.user_id)
    last = last_created_quote(session, ctx.user_id)
    if last is not None:
        inherit_defaults(quote, quote_from_record(last))

    if has_text(quote.number):
        number = quote.number.strip()
    else:
        _reconcile(session, ctx.user_id, settings)
        number = next_display_number(settings)

    record = Quote(owner_user_id=ctx.user_id, number=number, created_at=datetime.now())
    fill_quote_record(record, quote)
    session.add(record)

    previous = int(settings.next_quote_number or 1)
    settings.next_quote_number = previous + 1
    _store_attachment_defaults(settings, quote)
    logger.info("Quote counter for user %s: %s -> %s", ctx.user_id, previous, previous + 1)
    return record


def _update_quote(session: Session, ctx: SessionContext, quote: QuoteData) -> Quote:
    record = get_quote(session, ctx.user_id, quote.id)
    if record is None:
        raise LookupError(t("quote_not_found"))
    if has_text(quote.number):
        record.number = quote.number.strip()
    fill_quote_record(record, quote)
    return record


def _store_attachment_defaults(settings: CompanySettings, quote: QuoteData) -> None:
    if quote.attachments_position in ATTACHMENTS_POSITIONS:
        settings.attachments_position = quote.attachments_position
    if quote.attachments:
        layout = quote.attachments[0].layout.to_dict()
        if layout:
            settings.attachment_layout = layout


def reconcile_counter(ctx: SessionContext) -> int:
    """Move the counter past the highest number already assigned with the prefix.

    Compensates for quotes created outside the editor (imports, restores of
    older databases). Returns the resulting next number.
    """
    with get_session() as session:
        try:
            settings = get_settings(session, ctx.user_id)
            _reconcile(session, ctx.user_id, settings)
            result = int(settings.next_quote_number)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Reconciling the quote counter failed")
            raise PersistenceError(str(exc)) from exc
    return result


def _reconcile(session: Session, user_id: int, settings: CompanySettings) -> None:
    highest = highest_assigned(assigned_numbers(session, user_id), settings.quote_number_prefix or "")
    current = int(settings.next_quote_number or 1)
    if highest is not None and highest >= current:
        settings.next_quote_number = highest + 1
        logger.info("Quote counter for user %s reconciled: %s -> %s", user_id, current, highest + 1)


def highest_assigned(numbers: list[str], prefix: str) -> Optional[int]:
    highest: Optional[int] = None
    for number in numbers:
        if not number or not number.startswith(prefix):
            continue
        suffix = number[len(prefix):]
        if not suffix.isdigit():
            continue
        value = int(suffix)
        if highest is None or value > highest:
            highest = value
    return highest


__all__ = [
    "next_display_number",
    "validate_quote",
    "save_quote",
    "reconcile_counter",
    "highest_assigned",
]
