from datetime import datetime, timedelta

import pytest

from db.session import get_session
from db.store import TRASH_RETENTION_DAYS, list_quotes
from services.auth import create_user
from services.numbering import save_quote
from services.quote_model import CustomerSnapshot, LineItem, QuoteData
from services.trash import delete_permanently, move_to_trash, purge_expired, restore


def _save(ctx, name="ACME"):
    return save_quote(
        ctx,
        QuoteData(customer=CustomerSnapshot(name=name), items=[LineItem(description="x", quantity=1, unit_price=5)]),
    )


def _listed(ctx, trashed=False, search=""):
    with get_session() as session:
        return [q.customer_name for q in list_quotes(session, ctx.user_id, search, trashed=trashed)]


def test_trash_and_restore(ctx):
    quote = _save(ctx)
    move_to_trash(ctx, quote.id)
    assert _listed(ctx) == []
    assert _listed(ctx, trashed=True) == ["ACME"]

    restore(ctx, quote.id)
    assert _listed(ctx) == ["ACME"]
    assert _listed(ctx, trashed=True) == []


def test_delete_permanently(ctx):
    quote = _save(ctx)
    move_to_trash(ctx, quote.id)
    delete_permanently(ctx, quote.id)
    assert _listed(ctx, trashed=True) == []
    with pytest.raises(LookupError):
        restore(ctx, quote.id)


def test_purge_only_expired_entries(ctx):
    now = datetime(2024, 6, 30, 12, 0)
    old = _save(ctx, "Vecchio")
    recent = _save(ctx, "Recente")
    _save(ctx, "Attivo")
    move_to_trash(ctx, old.id, now=now - timedelta(days=TRASH_RETENTION_DAYS + 1))
    move_to_trash(ctx, recent.id, now=now - timedelta(days=2))

    assert purge_expired(ctx, now=now) == 1
    assert _listed(ctx, trashed=True) == ["Recente"]
    assert _listed(ctx) == ["Attivo"]


def test_search_matches_customer_and_number(ctx):
    first = _save(ctx, "Rossi Impianti")
    _save(ctx, "Bianchi")
    assert _listed(ctx, search="rossi") == ["Rossi Impianti"]
    assert _listed(ctx, search=first.number) == ["Rossi Impianti"]


def test_quotes_are_scoped_to_their_owner(ctx):
    other = create_user("luigi", "password")
    quote = _save(ctx)
    assert _listed(other) == []
    with pytest.raises(LookupError):
        move_to_trash(other, quote.id)
