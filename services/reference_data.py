from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from db.session import get_session
from db.store import get_quote, get_settings, last_created_quote, list_articles, list_customers
from services.context import SessionContext
from services.errors import ReferenceDataError
from services.quote_model import (
    ArticleData,
    CustomerData,
    QuoteData,
    SettingsData,
    article_from_record,
    customer_from_record,
    quote_from_record,
    settings_from_record,
)


logger = logging.getLogger("preventivi.reference_data")


@dataclass
class ReferenceData:
    settings: SettingsData
    articles: list[ArticleData] = field(default_factory=list)
    customers: list[CustomerData] = field(default_factory=list)
    last_quote: Optional[QuoteData] = None
    quote: Optional[QuoteData] = None


def fetch_settings(ctx: SessionContext) -> SettingsData:
    with get_session() as session:
        record = get_settings(session, ctx.user_id)
        data = settings_from_record(record)
        session.commit()
    return data


def fetch_articles(ctx: SessionContext) -> list[ArticleData]:
    with get_session() as session:
        return [article_from_record(a) for a in list_articles(session, ctx.user_id)]


def fetch_customers(ctx: SessionContext) -> list[CustomerData]:
    with get_session() as session:
        return [customer_from_record(c) for c in list_customers(session, ctx.user_id)]


def fetch_last_quote(ctx: SessionContext) -> Optional[QuoteData]:
    with get_session() as session:
        record = last_created_quote(session, ctx.user_id)
        return quote_from_record(record) if record is not None else None


def fetch_quote(ctx: SessionContext, quote_id: int) -> QuoteData:
    with get_session() as session:
        record = get_quote(session, ctx.user_id, quote_id)
        if record is None:
            raise LookupError(f"Quote {quote_id} not found")
        return quote_from_record(record)


def default_fetchers(ctx: SessionContext, quote_id: Optional[int] = None) -> dict[str, Callable[[], Any]]:
    fetchers: dict[str, Callable[[], Any]] = {
        "settings": lambda: fetch_settings(ctx),
        "articles": lambda: fetch_articles(ctx),
        "customers": lambda: fetch_customers(ctx),
        "last_quote": lambda: fetch_last_quote(ctx),
    }
    if quote_id is not None:
        fetchers["quote"] = lambda: fetch_quote(ctx, quote_id)
    return fetchers


class ReferenceDataLoader:
    """Runs the reference fetches of an editing session in parallel.

    ``on_loaded`` receives a :class:`ReferenceData` once every fetch has
    finished; ``on_failed`` receives a :class:`ReferenceDataError` for the
    first fetch that raised. Both run on a worker thread. After
    :meth:`cancel` neither is called.
    """

    def __init__(
        self,
        ctx: SessionContext,
        quote_id: Optional[int] = None,
        on_loaded: Optional[Callable[[ReferenceData], None]] = None,
        on_failed: Optional[Callable[[ReferenceDataError], None]] = None,
        fetchers: Optional[dict[str, Callable[[], Any]]] = None,
        max_workers: int = 4,
    ) -> None:
        self.ctx = ctx
        self.quote_id = quote_id
        self.on_loaded = on_loaded
        self.on_failed = on_failed
        self._fetchers = fetchers if fetchers is not None else default_fetchers(ctx, quote_id)
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._pending = 0
        self._cancelled = False
        self._finished = threading.Event()
        self.result: Optional[ReferenceData] = None
        self.error: Optional[ReferenceDataError] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        if self._executor is not None:
            raise RuntimeError("Loader already started")
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="reference-data"
        )
        self._pending = len(self._fetchers)
        if not self._fetchers:
            self._finish()
            return
        for name, fetch in self._fetchers.items():
            self._futures[name] = self._executor.submit(fetch)
        for future in list(self._futures.values()):
            future.add_done_callback(self._on_done)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
        for future in self._futures.values():
            future.cancel()
        self._finished.set()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def wait(self, timeout: Optional[float] = None) -> Optional[ReferenceData]:
        """Block until delivery or cancellation; returns the loaded data, if any."""
        self._finished.wait(timeout)
        return self.result

    def _on_done(self, _future: Future) -> None:
        with self._lock:
            self._pending -= 1
            if self._pending > 0 or self._cancelled:
                return
        self._finish()

    def _finish(self) -> None:
        try:
            if self._cancelled:
                return
            values: dict[str, Any] = {}
            for name, future in self._futures.items():
                exc = future.exception()
                if exc is not None:
                    self.error = ReferenceDataError(name, exc)
                    logger.error("Loading %s failed", name, exc_info=(type(exc), exc, exc.__traceback__))
                    if self.on_failed is not None:
                        self.on_failed(self.error)
                    return
                values[name] = future.result()
            self.result = ReferenceData(**values)
            if self.on_loaded is not None:
                self.on_loaded(self.result)
        finally:
            self._finished.set()
            if self._executor is not None:
                self._executor.shutdown(wait=False)


__all__ = [
    "ReferenceData",
    "ReferenceDataLoader",
    "default_fetchers",
    "fetch_settings",
    "fetch_articles",
    "fetch_customers",
    "fetch_last_quote",
    "fetch_quote",
]
