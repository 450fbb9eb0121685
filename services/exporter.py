from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from db.session import get_session
from db.store import get_quote, get_settings
from paths import get_portable_dir
from services.compositor import ComposedDocument, compose
from services.context import SessionContext
from services.document_model import RenderableQuote, build_document
from services.exporters_pdf import render_pdf, render_pdf_bytes
from services.exporters_xlsx import render_xlsx
from services.quote_model import QuoteData, SettingsData, quote_from_record, settings_from_record
from ui.i18n import t


logger = logging.getLogger("preventivi.export")

EXPORT_PREFIX = "Preventivo"
_UNSAFE = re.compile(r'[\\/:*?"<>|\s]+')


def export_filename(number: str, extension: str) -> str:
    safe = _UNSAFE.sub("_", (number or "").strip()).strip("._") or "bozza"
    return f"{EXPORT_PREFIX}_{safe}.{extension.lstrip('.')}"


def load_for_export(ctx: SessionContext, quote_id: int) -> tuple[QuoteData, SettingsData]:
    """Fetch a stored quote and its owner's settings; ``LookupError`` if missing."""
    with get_session() as session:
        record = get_quote(session, ctx.user_id, quote_id)
        if record is None:
            raise LookupError(t("quote_not_found"))
        quote = quote_from_record(record)
        settings = settings_from_record(get_settings(session, ctx.user_id))
        session.commit()
    return quote, settings


def build_renderable(ctx: SessionContext, quote_id: int) -> RenderableQuote:
    quote, settings = load_for_export(ctx, quote_id)
    return build_document(quote, settings)


def compose_quote(ctx: SessionContext, quote_id: int) -> ComposedDocument:
    return compose(build_renderable(ctx, quote_id))


def _target_path(path: Optional[Path], filename: str) -> Path:
    exports_dir = get_portable_dir("exports")
    if path is None or path.is_dir():
        return (path or exports_dir) / filename
    if not path.is_absolute():
        return exports_dir / path
    return path


def export_quote_pdf(ctx: SessionContext, quote_id: int, path: Optional[Path] = None) -> Path:
    doc = build_renderable(ctx, quote_id)
    path = _target_path(path, export_filename(doc.number, "pdf"))
    path.parent.mkdir(parents=True, exist_ok=True)
    render_pdf(compose(doc), path)
    logger.info("Quote %s exported to %s", doc.number, path)
    return path


def export_quote_xlsx(ctx: SessionContext, quote_id: int, path: Optional[Path] = None) -> Path:
    doc = build_renderable(ctx, quote_id)
    path = _target_path(path, export_filename(doc.number, "xlsx"))
    return render_xlsx(doc, path)


def quote_pdf_bytes(doc: RenderableQuote) -> bytes:
    """In-memory PDF of a resolved document, for the preview dialog."""
    return render_pdf_bytes(compose(doc))


__all__ = [
    "export_filename",
    "load_for_export",
    "build_renderable",
    "compose_quote",
    "export_quote_pdf",
    "export_quote_xlsx",
    "quote_pdf_bytes",
]
