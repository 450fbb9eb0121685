from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type, datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from db.models import Article, CompanySettings, Customer, Quote


TRASH_RETENTION_DAYS = 30


def get_settings(session: Session, user_id: int) -> CompanySettings:
    settings = session.execute(
        select(CompanySettings).where(CompanySettings.owner_user_id == user_id)
    ).scalar_one_or_none()
    if settings is None:
        from db import seed_user_defaults

        settings = seed_user_defaults(session, user_id)
    return settings


def list_articles(session: Session, user_id: int, search: str = "") -> list[Article]:
    q = select(Article).where(Article.owner_user_id == user_id)
    text = search.strip().lower()
    if text:
        pattern = f"%{text}%"
        q = q.where(or_(func.lower(Article.code).like(pattern), func.lower(Article.description).like(pattern)))
    return list(session.execute(q.order_by(Article.code.asc())).scalars())


def list_customers(session: Session, user_id: int, search: str = "") -> list[Customer]:
    q = select(Customer).where(Customer.owner_user_id == user_id)
    text = search.strip().lower()
    if text:
        q = q.where(func.lower(Customer.name).like(f"%{text}%"))
    return list(session.execute(q.order_by(Customer.name.asc())).scalars())


def get_quote(session: Session, user_id: int, quote_id: int) -> Optional[Quote]:
    return session.execute(
        select(Quote)
        .options(selectinload(Quote.lines), selectinload(Quote.attachments))
        .where(Quote.id == quote_id, Quote.owner_user_id == user_id)
    ).scalar_one_or_none()


def list_quotes(session: Session, user_id: int, search: str = "", trashed: bool = False) -> list[Quote]:
    q = select(Quote).where(Quote.owner_user_id == user_id)
    if trashed:
        q = q.where(Quote.deleted_at.is_not(None)).order_by(Quote.deleted_at.desc())
    else:
        q = q.where(Quote.deleted_at.is_(None)).order_by(Quote.created_at.desc(), Quote.id.desc())
    text = search.strip().lower()
    if text:
        pattern = f"%{text}%"
        q = q.where(or_(func.lower(Quote.customer_name).like(pattern), func.lower(Quote.number).like(pattern)))
    return list(session.execute(q).scalars())


def last_created_quote(session: Session, user_id: int) -> Optional[Quote]:
    return session.execute(
        select(Quote)
        .options(selectinload(Quote.lines), selectinload(Quote.attachments))
        .where(Quote.owner_user_id == user_id)
        .order_by(Quote.created_at.desc(), Quote.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def assigned_numbers(session: Session, user_id: int) -> list[str]:
    return [n for (n,) in session.execute(select(Quote.number).where(Quote.owner_user_id == user_id)).all()]


def purge_trash(
    session: Session,
    user_id: int,
    now: datetime | None = None,
    retention_days: int = TRASH_RETENTION_DAYS,
) -> int:
    """Permanently delete trashed quotes older than the retention window."""
    cutoff = (now or datetime.now()) - timedelta(days=retention_days)
    expired = list(
        session.execute(
            select(Quote).where(
                Quote.owner_user_id == user_id,
                Quote.deleted_at.is_not(None),
                Quote.deleted_at < cutoff,
            )
        ).scalars()
    )
    for quote in expired:
        session.delete(quote)
    return len(expired)


@dataclass(frozen=True)
class RecentQuote:
    id: int
    number: str
    customer_name: str
    date: date_type
    total: float


@dataclass(frozen=True)
class DashboardStats:
    quotes_count: int
    articles_count: int
    total_value: float
    recent: tuple[RecentQuote, ...]


def dashboard_stats(session: Session, user_id: int, recent: int = 5) -> DashboardStats:
    """Counts and totals of the owner's live quotes; trashed quotes are left out."""
    live = (Quote.owner_user_id == user_id, Quote.deleted_at.is_(None))
    quotes_count, total_value = session.execute(
        select(func.count(Quote.id), func.coalesce(func.sum(Quote.total), 0)).where(*live)
    ).one()
    articles_count = session.execute(
        select(func.count(Article.id)).where(Article.owner_user_id == user_id)
    ).scalar_one()
    rows = session.execute(
        select(Quote.id, Quote.number, Quote.customer_name, Quote.date, Quote.total)
        .where(*live)
        .order_by(Quote.created_at.desc(), Quote.id.desc())
        .limit(recent)
    ).all()
    return DashboardStats(
        quotes_count=int(quotes_count),
        articles_count=int(articles_count),
        total_value=round(float(total_value), 2),
        recent=tuple(
            RecentQuote(id=r.id, number=r.number, customer_name=r.customer_name, date=r.date, total=float(r.total))
            for r in rows
        ),
    )


__all__ = [
    "TRASH_RETENTION_DAYS",
    "get_settings",
    "list_articles",
    "list_customers",
    "get_quote",
    "list_quotes",
    "last_created_quote",
    "assigned_numbers",
    "purge_trash",
    "RecentQuote",
    "DashboardStats",
    "dashboard_stats",
]
