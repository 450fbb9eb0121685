import threading
import time

from services.errors import ReferenceDataError
from services.numbering import save_quote
from services.quote_model import CustomerSnapshot, LineItem, QuoteData, SettingsData
from services.reference_data import (
    ReferenceDataLoader,
    default_fetchers,
    fetch_articles,
    fetch_customers,
    fetch_last_quote,
    fetch_settings,
)


def test_loader_delivers_all_results():
    delivered = []
    loader = ReferenceDataLoader(
        ctx=None,
        on_loaded=delivered.append,
        fetchers={
            "settings": lambda: SettingsData(company_name="Rossi Srl"),
            "articles": lambda: ["articolo"],
            "customers": lambda: [],
        },
    )
    loader.start()
    data = loader.wait(timeout=5)

    assert data is not None
    assert data.settings.company_name == "Rossi Srl"
    assert data.articles == ["articolo"]
    assert data.last_quote is None
    assert delivered == [data]
    assert loader.error is None


def test_loader_reports_first_failure():
    failures = []
    loaded = []

    def broken():
        raise OSError("database offline")

    loader = ReferenceDataLoader(
        ctx=None,
        on_loaded=loaded.append,
        on_failed=failures.append,
        fetchers={"settings": lambda: SettingsData(), "customers": broken},
    )
    loader.start()
    assert loader.wait(timeout=5) is None

    assert loaded == []
    assert len(failures) == 1
    assert isinstance(failures[0], ReferenceDataError)
    assert failures[0].source == "customers"
    assert loader.error is failures[0]


def test_cancelled_loader_delivers_nothing():
    release = threading.Event()
    finished = threading.Event()
    loaded = []
    failures = []

    def slow_settings():
        release.wait(timeout=5)
        finished.set()
        return SettingsData()

    loader = ReferenceDataLoader(
        ctx=None,
        on_loaded=loaded.append,
        on_failed=failures.append,
        fetchers={"settings": slow_settings},
    )
    loader.start()
    loader.cancel()
    release.set()
    assert finished.wait(timeout=5)
    time.sleep(0.05)

    assert loader.cancelled
    assert loader.wait(timeout=1) is None
    assert loaded == []
    assert failures == []


def test_fetchers_read_the_database(ctx):
    settings = fetch_settings(ctx)
    assert settings.next_quote_number == 1
    assert settings.quote_number_prefix.endswith("-")
    assert fetch_articles(ctx) == []
    assert fetch_customers(ctx) == []
    assert fetch_last_quote(ctx) is None

    saved = save_quote(ctx, QuoteData(customer=CustomerSnapshot(name="ACME"), items=[LineItem(description="x")]))
    assert fetch_last_quote(ctx).id == saved.id


def test_loader_with_default_fetchers(ctx):
    saved = save_quote(ctx, QuoteData(customer=CustomerSnapshot(name="ACME"), items=[LineItem(description="x")]))
    assert set(default_fetchers(ctx)) == {"settings", "articles", "customers", "last_quote"}

    loader = ReferenceDataLoader(ctx, quote_id=saved.id, max_workers=1)
    loader.start()
    data = loader.wait(timeout=10)

    assert data is not None
    assert data.quote.customer.name == "ACME"
    assert data.last_quote.id == saved.id
    assert data.settings.next_quote_number == 2
