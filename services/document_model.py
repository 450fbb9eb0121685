from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

from services.images import clean_image, first_image, to_height, to_non_negative, to_scale, valid_images
from services.quote_model import (
    ATTACHMENTS_POSITIONS,
    Attachment,
    IMAGE_POSITIONS,
    CustomerSnapshot,
    LeasingPlan,
    LineItem,
    ProductImage,
    QuoteData,
    SettingsData,
)


SOFTWARE_FALLBACK_TEXT = (
    "Il software fornito accompagna l'utente in tutte le fasi del lavoro quotidiano: "
    "dalla gestione delle anagrafiche alla produzione dei documenti, con un'interfaccia "
    "semplice e aggiornamenti costanti. L'installazione, la configurazione iniziale e la "
    "formazione del personale sono incluse nella fornitura."
)

DEFAULT_SCALE = 100.0
DEFAULT_IMAGE_POSITION = "top"
DEFAULT_ATTACHMENT_IMAGE_HEIGHT = 300.0
DEFAULT_DESCRIPTION_FONT_SIZE = 11.0
DEFAULT_DESCRIPTION_COLOR = "#333333"
DEFAULT_ATTACHMENTS_POSITION = "after"
DEFAULT_HARDWARE_IMAGE_HEIGHT = 260.0
DEFAULT_SECTION_IMAGE_HEIGHT = 280.0
DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT = 520.0
CONTRACT_PAGE_DELIMITER = "---"

# Narrative and image fields a new quote takes from the last quote created.
INHERITED_FIELDS = (
    "premise_text",
    "premise_hardware_images",
    "premise_hardware_image_height",
    "software_text",
    "software_images",
    "software_image_height",
    "target_audience_images",
    "target_audience_image_height",
    "product_text",
)

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# ---------------------------
# Value predicates
# ---------------------------

def has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def has_images(value: Any) -> bool:
    return bool(valid_images(value))


def has_height(value: Any) -> bool:
    return to_height(value) is not None


def has_scale(value: Any) -> bool:
    return to_non_negative(value, 0.0) > 0


def has_value(value: Any) -> bool:
    return value is not None


def has_image_position(value: Any) -> bool:
    return value in IMAGE_POSITIONS


def has_attachments_position(value: Any) -> bool:
    return value in ATTACHMENTS_POSITIONS


def has_color(value: Any) -> bool:
    return isinstance(value, str) and bool(_HEX_COLOR.match(value.strip()))


def normalize_color(value: str) -> str:
    """Expand ``#rgb`` to ``#rrggbb``; reportlab reads short forms as integers."""
    color = value.strip()
    if len(color) == 4:
        return "#" + "".join(c * 2 for c in color[1:])
    return color


_FIELD_PREDICATES: dict[str, Callable[[Any], bool]] = {
    "premise_text": has_text,
    "premise_hardware_images": has_images,
    "premise_hardware_image_height": has_height,
    "software_text": has_text,
    "software_images": has_images,
    "software_image_height": has_height,
    "target_audience_images": has_images,
    "target_audience_image_height": has_height,
    "product_text": has_text,
}


def resolve(
    explicit: Any,
    last_quote_value: Any = None,
    settings_default: Any = None,
    fallback: Any = None,
    is_set: Callable[[Any], bool] = has_value,
) -> Any:
    """Return the first value of the chain that ``is_set`` accepts.

    Order: the value on the quote being edited, the value from the user's
    most recent quote (new quotes only, pass ``None`` otherwise), the
    Settings default, then the literal fallback.
    """
    for candidate in (explicit, last_quote_value, settings_default):
        if is_set(candidate):
            return candidate
    return fallback


def inherit_defaults(quote: QuoteData, last_quote: Optional[QuoteData]) -> QuoteData:
    """Copy unset inherited fields of a new quote from the last quote."""
    if last_quote is None or not quote.is_new:
        return quote
    for name in INHERITED_FIELDS:
        is_set = _FIELD_PREDICATES[name]
        current = getattr(quote, name)
        if is_set(current):
            continue
        inherited = getattr(last_quote, name)
        if is_set(inherited):
            setattr(quote, name, list(inherited) if isinstance(inherited, list) else inherited)
    return quote


def resolve_display_number(number: Optional[str], settings: SettingsData) -> str:
    if has_text(number):
        return number.strip()
    return f"{settings.quote_number_prefix or ''}{int(settings.next_quote_number or 1)}"


def split_contract_pages(text: Optional[str]) -> list[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(CONTRACT_PAGE_DELIMITER) if part.strip()]


def caption_from_line(item: LineItem) -> str:
    """Caption text for a product image linked to a line item."""
    parts = [p.strip() for p in (item.code, item.description) if p and p.strip()]
    return " - ".join(parts)


# ---------------------------
# Renderable model
# ---------------------------

@dataclass(frozen=True)
class CompanyInfo:
    name: str = ""
    address: str = ""
    vat: str = ""
    email: str = ""
    phone: str = ""
    bank_info: str = ""
    logo: Optional[str] = None
    signature_image: Optional[str] = None
    signature_scale: float = DEFAULT_SCALE


@dataclass(frozen=True)
class ResolvedAttachment:
    title: str
    description: str
    image: Optional[str]
    image_position: str
    image_height: float
    description_font_size: float
    description_color: str
    show_title: bool
    full_page_image: bool


@dataclass(frozen=True)
class SectionImage:
    src: str
    scale: float = DEFAULT_SCALE
    max_height: Optional[float] = None


@dataclass
class RenderableQuote:
    number: str
    date: date
    customer: CustomerSnapshot
    company: CompanyInfo
    items: list[LineItem] = field(default_factory=list)
    subtotal: float = 0.0
    vat_total: float = 0.0
    total: float = 0.0
    notes: str = ""
    leasing: Optional[LeasingPlan] = None
    show_totals: bool = True
    show_bank_info: bool = True

    toc_text: str = ""
    toc_text_below: str = ""
    premise_text: str = ""
    hardware_image: Optional[SectionImage] = None
    software_text: str = SOFTWARE_FALLBACK_TEXT
    software_image: Optional[SectionImage] = None
    target_image: Optional[SectionImage] = None
    product_text: str = ""
    product_images: list[ProductImage] = field(default_factory=list)
    product_image_scale: float = DEFAULT_SCALE
    product_image_max_height: float = DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT
    product_images_fit: str = "contain"
    supply_conditions: list[str] = field(default_factory=list)

    attachments: list[ResolvedAttachment] = field(default_factory=list)
    attachments_position: str = DEFAULT_ATTACHMENTS_POSITION
    contract_pages: list[str] = field(default_factory=list)


def build_document(
    quote: QuoteData,
    settings: SettingsData,
    last_quote: Optional[QuoteData] = None,
) -> RenderableQuote:
    """Merge quote, last quote and Settings into a fully resolved document.

    ``last_quote`` only takes part for quotes that were never saved.
    """
    last = last_quote if (last_quote is not None and quote.is_new) else None

    def inherited(name: str, settings_default: Any = None, fallback: Any = None) -> Any:
        return resolve(
            getattr(quote, name),
            getattr(last, name) if last is not None else None,
            settings_default,
            fallback,
            is_set=_FIELD_PREDICATES[name],
        )

    hardware_src = first_image(inherited("premise_hardware_images")) or clean_image(settings.default_hardware_image)
    hardware_image = None
    if hardware_src:
        height = resolve(
            inherited("premise_hardware_image_height"),
            None,
            settings.default_hardware_image_height,
            DEFAULT_HARDWARE_IMAGE_HEIGHT,
            is_set=has_height,
        )
        hardware_image = SectionImage(src=hardware_src, max_height=to_height(height))

    software_image = _section_image(
        first_image(inherited("software_images")) or clean_image(settings.default_software_image),
        resolve(quote.software_image_scale, None, settings.default_software_image_scale, DEFAULT_SCALE, is_set=has_scale),
        resolve(inherited("software_image_height"), None, None, DEFAULT_SECTION_IMAGE_HEIGHT, is_set=has_height),
    )
    target_image = _section_image(
        first_image(inherited("target_audience_images")) or clean_image(settings.default_target_image),
        resolve(quote.target_audience_image_scale, None, settings.default_target_image_scale, DEFAULT_SCALE, is_set=has_scale),
        resolve(inherited("target_audience_image_height"), None, None, DEFAULT_SECTION_IMAGE_HEIGHT, is_set=has_height),
    )

    product_images = [
        ProductImage(src=src, caption=(image.caption or "").strip())
        for image in quote.product_images
        for src in [clean_image(image.src)]
        if src is not None
    ]

    attachments_position = resolve(
        quote.attachments_position,
        None,
        settings.attachments_position,
        DEFAULT_ATTACHMENTS_POSITION,
        is_set=has_attachments_position,
    )

    return RenderableQuote(
        number=resolve_display_number(quote.number, settings),
        date=quote.date,
        customer=quote.customer,
        company=CompanyInfo(
            name=settings.company_name,
            address=settings.company_address,
            vat=settings.company_vat,
            email=settings.company_email,
            phone=settings.company_phone,
            bank_info=(settings.bank_info or "").strip(),
            logo=clean_image(settings.logo_data) or clean_image(settings.logo_url),
            signature_image=clean_image(settings.signature_image),
            signature_scale=to_scale(settings.signature_scale, DEFAULT_SCALE),
        ),
        items=list(quote.items),
        subtotal=quote.subtotal,
        vat_total=quote.vat_total,
        total=quote.total,
        notes=(quote.notes or "").strip(),
        leasing=quote.leasing,
        show_totals=bool(quote.show_totals),
        show_bank_info=bool(quote.show_bank_info),
        toc_text=(quote.toc_text or "").strip(),
        toc_text_below=(quote.toc_text_below or "").strip(),
        premise_text=(inherited("premise_text", fallback="") or "").strip(),
        hardware_image=hardware_image,
        software_text=inherited("software_text", fallback=SOFTWARE_FALLBACK_TEXT).strip(),
        software_image=software_image,
        target_image=target_image,
        product_text=(inherited("product_text", fallback="") or "").strip(),
        product_images=product_images,
        product_image_scale=to_scale(
            resolve(quote.product_image_scale, None, settings.default_product_image_scale, DEFAULT_SCALE, is_set=has_scale)
        ),
        product_image_max_height=to_height(
            resolve(
                quote.product_image_max_height,
                None,
                settings.default_product_image_max_height,
                DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT,
                is_set=has_height,
            )
        ) or DEFAULT_PRODUCT_IMAGE_MAX_HEIGHT,
        product_images_fit="cover" if quote.product_images_fit == "cover" else "contain",
        supply_conditions=[c.strip() for c in quote.supply_conditions if has_text(c)],
        attachments=[resolve_attachment(att, settings) for att in quote.attachments],
        attachments_position=attachments_position,
        contract_pages=split_contract_pages(settings.contract_pages_text),
    )


def resolve_attachment(attachment: Attachment, settings: SettingsData) -> ResolvedAttachment:
    layout = attachment.layout
    defaults = settings.attachment_layout
    image = clean_image(attachment.image)
    height = resolve(layout.image_height, None, defaults.image_height, DEFAULT_ATTACHMENT_IMAGE_HEIGHT, is_set=has_height)
    font_size = resolve(
        layout.description_font_size,
        None,
        defaults.description_font_size,
        DEFAULT_DESCRIPTION_FONT_SIZE,
        is_set=has_height,
    )
    return ResolvedAttachment(
        title=(attachment.title or "").strip(),
        description=(attachment.description or "").strip(),
        image=image,
        image_position=resolve(
            layout.image_position, None, defaults.image_position, DEFAULT_IMAGE_POSITION, is_set=has_image_position
        ),
        image_height=to_height(height) or DEFAULT_ATTACHMENT_IMAGE_HEIGHT,
        description_font_size=to_height(font_size) or DEFAULT_DESCRIPTION_FONT_SIZE,
        description_color=normalize_color(
            resolve(layout.description_color, None, defaults.description_color, DEFAULT_DESCRIPTION_COLOR, is_set=has_color)
        ),
        show_title=bool(resolve(layout.show_title, None, defaults.show_title, True)),
        full_page_image=bool(resolve(layout.full_page_image, None, defaults.full_page_image, False)) and image is not None,
    )


def _section_image(src: Optional[str], scale: Any, max_height: Any) -> Optional[SectionImage]:
    if not src:
        return None
    return SectionImage(src=src, scale=to_scale(scale), max_height=to_height(max_height))


__all__ = [
    "SOFTWARE_FALLBACK_TEXT",
    "INHERITED_FIELDS",
    "CompanyInfo",
    "ResolvedAttachment",
    "SectionImage",
    "RenderableQuote",
    "resolve",
    "inherit_defaults",
    "resolve_display_number",
    "split_contract_pages",
    "caption_from_line",
    "build_document",
    "resolve_attachment",
]
