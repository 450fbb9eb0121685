from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import Quote
from db.session import get_session
from db.store import TRASH_RETENTION_DAYS, get_quote, purge_trash
from services.context import SessionContext
from services.errors import PersistenceError
from ui.i18n import t


logger = logging.getLogger("preventivi.trash")

T = TypeVar("T")


def _run(action: str, work: Callable[[Session], T]) -> T:
    with get_session() as session:
        try:
            result = work(session)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("%s failed", action)
            raise PersistenceError(str(exc)) from exc
    return result


def _require(session: Session, ctx: SessionContext, quote_id: int) -> Quote:
    quote = get_quote(session, ctx.user_id, quote_id)
    if quote is None:
        raise LookupError(t("quote_not_found"))
    return quote


def move_to_trash(ctx: SessionContext, quote_id: int, now: Optional[datetime] = None) -> None:
    def work(session: Session) -> None:
        quote = _require(session, ctx, quote_id)
        quote.deleted_at = now or datetime.now()
        logger.info("Quote %s moved to trash", quote.number)

    _run("Moving quote to trash", work)


def restore(ctx: SessionContext, quote_id: int) -> None:
    def work(session: Session) -> None:
        quote = _require(session, ctx, quote_id)
        quote.deleted_at = None
        logger.info("Quote %s restored", quote.number)

    _run("Restoring quote", work)


def delete_permanently(ctx: SessionContext, quote_id: int) -> None:
    def work(session: Session) -> None:
        quote = _require(session, ctx, quote_id)
        session.delete(quote)
        logger.info("Quote %s deleted permanently", quote.number)

    _run("Deleting quote", work)


def purge_expired(
    ctx: SessionContext,
    now: Optional[datetime] = None,
    retention_days: int = TRASH_RETENTION_DAYS,
) -> int:
    """Delete trashed quotes of the user older than the retention window."""
    count = _run("Purging trash", lambda session: purge_trash(session, ctx.user_id, now, retention_days))
    if count:
        logger.info("Purged %s expired quotes from trash for user %s", count, ctx.user_id)
    return count


__all__ = ["move_to_trash", "restore", "delete_permanently", "purge_expired"]
