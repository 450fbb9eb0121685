from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from db.session import get_session
from db.store import get_settings
from services.context import SessionContext
from services.document_model import has_attachments_position, has_text
from services.errors import PersistenceError
from services.images import clean_image, to_height, to_scale
from services.quote_model import SettingsData, settings_from_record
from services.totals import to_vat_rate


logger = logging.getLogger("preventivi.company")


def load_company_settings(ctx: SessionContext) -> SettingsData:
    with get_session() as session:
        data = settings_from_record(get_settings(session, ctx.user_id))
        session.commit()
    return data


def save_company_settings(ctx: SessionContext, data: SettingsData) -> SettingsData:
    """Store the per-user company settings edited in the settings view.

    The quote counter is not written here; it only moves through quote saves
    and counter reconciliation.
    """
    with get_session() as session:
        try:
            record = get_settings(session, ctx.user_id)
            record.company_name = data.company_name.strip()
            record.company_address = data.company_address.strip()
            record.company_vat = data.company_vat.strip()
            record.company_email = data.company_email.strip()
            record.company_phone = data.company_phone.strip()
            record.bank_info = data.bank_info.strip()
            record.logo_data = clean_image(data.logo_data)
            record.logo_url = data.logo_url.strip() if has_text(data.logo_url) else None
            record.signature_image = clean_image(data.signature_image)
            record.signature_scale = to_scale(data.signature_scale) if data.signature_scale else None
            record.contract_pages_text = data.contract_pages_text or ""
            record.quote_number_prefix = data.quote_number_prefix.strip()
            record.default_vat = to_vat_rate(data.default_vat)
            record.default_hardware_image = clean_image(data.default_hardware_image)
            record.default_hardware_image_height = to_height(data.default_hardware_image_height)
            record.default_software_image = clean_image(data.default_software_image)
            record.default_software_image_scale = to_height(data.default_software_image_scale)
            record.default_target_image = clean_image(data.default_target_image)
            record.default_target_image_scale = to_height(data.default_target_image_scale)
            record.default_product_image_scale = to_height(data.default_product_image_scale)
            record.default_product_image_max_height = to_height(data.default_product_image_max_height)
            record.attachments_position = (
                data.attachments_position if has_attachments_position(data.attachments_position) else None
            )
            session.flush()
            saved = settings_from_record(record)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Saving settings for user %s failed", ctx.user_id)
            raise PersistenceError(str(exc)) from exc
    logger.info("Settings saved for user %s", ctx.user_id)
    return saved


__all__ = ["load_company_settings", "save_company_settings"]
