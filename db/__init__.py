from __future__ import annotations

import csv
import logging
from datetime import date
from pathlib import Path

from sqlalchemy import inspect, select, text
from sqlalchemy.orm import Session

from db.models import Article, Base, CompanySettings, Customer
from db.session import get_engine, get_session
from paths import get_assets_dir


logger = logging.getLogger("preventivi.db")

CATALOG_CSV = "articoli.csv"
CUSTOMERS_CSV = "clienti.csv"

# Columns added after the first release; created on databases that predate them.
_ADDITIVE_COLUMNS: dict[str, dict[str, str]] = {
    "quotes": {
        "deleted_at": "DATETIME",
        "toc_text_below": "TEXT",
        "product_images_fit": "VARCHAR(16)",
        "show_bank_info": "BOOLEAN NOT NULL DEFAULT 1",
    },
    "settings": {
        "signature_image": "TEXT",
        "signature_scale": "NUMERIC(6, 2)",
        "attachment_layout": "JSON",
    },
}


def init_db() -> None:
    engine = get_engine()
    Base.metadata.create_all(engine)
    _migrate_schema(engine)


def _migrate_schema(engine) -> None:
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    with engine.begin() as conn:
        for table, columns in _ADDITIVE_COLUMNS.items():
            if table not in tables:
                continue
            existing = {c["name"] for c in inspector.get_columns(table)}
            for name, ddl in columns.items():
                if name in existing:
                    continue
                logger.info("Adding column %s.%s", table, name)
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}"))


def seed_user_defaults(session: Session, user_id: int) -> CompanySettings:
    """Create the settings row of a new user and load the optional base catalog."""
    settings = session.execute(
        select(CompanySettings).where(CompanySettings.owner_user_id == user_id)
    ).scalar_one_or_none()
    if settings is None:
        settings = CompanySettings(
            owner_user_id=user_id,
            company_name="La Mia Azienda",
            company_address="Via Roma 1, 00100 Roma",
            company_vat="12345678901",
            company_email="info@azienda.it",
            company_phone="06 123456",
            bank_info="IBAN: IT00 X 00000 00000 000000000000",
            quote_number_prefix=f"{date.today().year}-",
            next_quote_number=1,
            default_vat=22,
        )
        session.add(settings)
        session.flush()

    has_articles = session.execute(
        select(Article.id).where(Article.owner_user_id == user_id).limit(1)
    ).first()
    if has_articles is None:
        csv_path = get_assets_dir() / CATALOG_CSV
        if csv_path.exists():
            load_articles_csv(session, user_id, csv_path)

    has_customers = session.execute(
        select(Customer.id).where(Customer.owner_user_id == user_id).limit(1)
    ).first()
    if has_customers is None:
        csv_path = get_assets_dir() / CUSTOMERS_CSV
        if csv_path.exists():
            load_customers_csv(session, user_id, csv_path)
    return settings


def load_articles_csv(session: Session, user_id: int, path: Path) -> int:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        rows = [dict(r) for r in reader]

    existing = {
        code
        for (code,) in session.execute(
            select(Article.code).where(Article.owner_user_id == user_id)
        ).all()
    }
    inserted = 0
    for row in rows:
        code = (row.get("Codice") or row.get("code") or "").strip()
        description = (row.get("Descrizione") or row.get("description") or "").strip()
        if not code or not description or code in existing:
            continue
        session.add(
            Article(
                owner_user_id=user_id,
                code=code,
                description=description,
                unit=(row.get("Unita") or row.get("unit") or "").strip(),
                unit_price=_to_float(row.get("Prezzo") or row.get("unit_price"), 0.0),
                vat=_to_float(row.get("IVA") or row.get("vat"), 22.0),
            )
        )
        existing.add(code)
        inserted += 1
    session.flush()
    logger.info("Loaded %s articles from %s", inserted, path)
    return inserted


def load_customers_csv(session: Session, user_id: int, path: Path) -> int:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        rows = [dict(r) for r in csv.DictReader(f)]
    inserted = 0
    for row in rows:
        name = (row.get("Nome") or row.get("name") or "").strip()
        if not name:
            continue
        session.add(
            Customer(
                owner_user_id=user_id,
                name=name,
                address=(row.get("Indirizzo") or row.get("address") or "").strip(),
                vat_id=(row.get("PIVA") or row.get("vat_id") or "").strip(),
                email=(row.get("Email") or row.get("email") or "").strip(),
                phone=(row.get("Telefono") or row.get("phone") or "").strip(),
            )
        )
        inserted += 1
    session.flush()
    return inserted


def _to_float(value, default: float) -> float:
    if value is None:
        return default
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return default


__all__ = ["init_db", "get_session", "seed_user_defaults", "load_articles_csv", "load_customers_csv"]
