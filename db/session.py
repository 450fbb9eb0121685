from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from paths import get_portable_dir


DATABASE_NAME = "preventivi.db"
DATABASE_URL_ENV = "PREVENTIVI_DATABASE_URL"

SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)

_engine: Engine | None = None


def default_database_url() -> str:
    from_env = os.environ.get(DATABASE_URL_ENV, "").strip()
    if from_env:
        return from_env
    from settings import AppSettings

    configured = str(AppSettings.load().get("database_url", "") or "").strip()
    if configured:
        return configured
    data_dir = get_portable_dir("data")
    return f"sqlite:///{data_dir / DATABASE_NAME}"


def configure_engine(url: str) -> Engine:
    """Bind the session factory to ``url``.

    Local SQLite files and remote servers share the same code path; an
    in-memory SQLite URL keeps a single shared connection so that every
    session sees the same database.
    """
    global _engine
    if _engine is not None:
        _engine.dispose()
    if url in {"sqlite://", "sqlite:///:memory:"}:
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url, pool_pre_ping=not url.startswith("sqlite"))
    SessionLocal.configure(bind=engine)
    _engine = engine
    return engine


def get_engine() -> Engine:
    if _engine is None:
        return configure_engine(default_database_url())
    return _engine


def get_session() -> Session:
    get_engine()
    return SessionLocal()
