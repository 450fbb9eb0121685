import pytest

from db.models import Article
from db.session import get_session
from db.store import dashboard_stats
from services.auth import create_user
from services.numbering import save_quote
from services.quote_model import CustomerSnapshot, LineItem, QuoteData
from services.trash import move_to_trash


def _save(ctx, name, price):
    return save_quote(
        ctx,
        QuoteData(
            customer=CustomerSnapshot(name=name),
            items=[LineItem(description="Servizio", quantity=1, unit_price=price, vat_rate=22)],
        ),
    )


def _stats(ctx, **kwargs):
    with get_session() as session:
        return dashboard_stats(session, ctx.user_id, **kwargs)


def test_empty_dashboard(ctx):
    stats = _stats(ctx)
    assert stats.quotes_count == 0
    assert stats.articles_count == 0
    assert stats.total_value == 0
    assert stats.recent == ()


def test_counts_totals_and_recent_quotes(ctx):
    saved = [_save(ctx, f"Cliente {i}", 100) for i in range(6)]
    with get_session() as session:
        session.add(Article(owner_user_id=ctx.user_id, code="A1", description="Licenza", unit_price=10, vat=22))
        session.add(Article(owner_user_id=ctx.user_id, code="A2", description="Canone", unit_price=20, vat=22))
        session.commit()

    stats = _stats(ctx)

    assert stats.quotes_count == 6
    assert stats.articles_count == 2
    assert stats.total_value == pytest.approx(732.0)
    assert [r.id for r in stats.recent] == [q.id for q in reversed(saved)][:5]
    assert stats.recent[0].customer_name == "Cliente 5"
    assert stats.recent[0].total == pytest.approx(122.0)


def test_trashed_quotes_are_left_out(ctx):
    kept = _save(ctx, "Rossi", 100)
    trashed = _save(ctx, "Bianchi", 50)
    move_to_trash(ctx, trashed.id)

    stats = _stats(ctx)

    assert stats.quotes_count == 1
    assert stats.total_value == pytest.approx(122.0)
    assert [r.id for r in stats.recent] == [kept.id]


def test_dashboard_is_scoped_to_owner(ctx):
    _save(ctx, "Rossi", 100)
    other = create_user("luigi", "password")
    stats = _stats(other)
    assert stats.quotes_count == 0
    assert stats.recent == ()
