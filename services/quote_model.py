from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from db.models import Article, CompanySettings, Customer, Quote, QuoteAttachment, QuoteLine


IMAGE_POSITIONS = ("top", "bottom", "left", "right")
ATTACHMENTS_POSITIONS = ("before", "after")
LEASING_KINDS = ("leasing", "financing")
PERIODICITIES = ("monthly", "quarterly")
FIT_MODES = ("contain", "cover")


@dataclass
class LineItem:
    code: str = ""
    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    vat_rate: float = 0.0
    total: float = 0.0
    article_id: Optional[int] = None


@dataclass
class LeasingPlan:
    kind: str = "leasing"
    asset_value: float = 0.0
    vat_rate: Optional[float] = None
    vat_amount: float = 0.0
    total_asset_value_vat_incl: float = 0.0
    down_payment_value: Optional[float] = None
    down_payment_percent: Optional[float] = None
    net_financed_capital: Optional[float] = None
    duration_months: Optional[int] = None
    installment_count: Optional[int] = None
    periodicity: str = "monthly"
    installment_amount: Optional[float] = None
    start_date: Optional[date] = None
    first_installment_date: Optional[date] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("start_date", "first_installment_date"):
            value = data[key]
            data[key] = value.isoformat() if value else None
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional["LeasingPlan"]:
        if not isinstance(data, dict):
            return None
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        for key in ("start_date", "first_installment_date"):
            values[key] = _parse_date(values.get(key))
        return cls(**values)


@dataclass
class AttachmentLayout:
    """Per-attachment layout; ``None`` fields fall back to Settings defaults."""

    image_position: Optional[str] = None
    image_height: Optional[float] = None
    description_font_size: Optional[float] = None
    description_color: Optional[str] = None
    show_title: Optional[bool] = None
    full_page_image: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "AttachmentLayout":
        if not isinstance(data, dict):
            return cls()
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Attachment:
    title: str = ""
    description: str = ""
    image: Optional[str] = None
    layout: AttachmentLayout = field(default_factory=AttachmentLayout)


@dataclass
class ProductImage:
    src: str = ""
    caption: str = ""


@dataclass
class CustomerSnapshot:
    name: str = ""
    address: str = ""
    vat_id: str = ""


@dataclass
class QuoteData:
    id: Optional[int] = None
    number: str = ""
    date: date = field(default_factory=date.today)
    customer: CustomerSnapshot = field(default_factory=CustomerSnapshot)
    items: list[LineItem] = field(default_factory=list)
    subtotal: float = 0.0
    vat_total: float = 0.0
    total: float = 0.0
    notes: str = ""
    leasing: Optional[LeasingPlan] = None
    attachments: list[Attachment] = field(default_factory=list)
    attachments_position: Optional[str] = None

    toc_text: Optional[str] = None
    toc_text_below: Optional[str] = None
    premise_text: Optional[str] = None
    premise_hardware_images: list[str] = field(default_factory=list)
    premise_hardware_image_height: Optional[float] = None
    software_text: Optional[str] = None
    software_images: list[str] = field(default_factory=list)
    software_image_height: Optional[float] = None
    software_image_scale: Optional[float] = None
    target_audience_images: list[str] = field(default_factory=list)
    target_audience_image_height: Optional[float] = None
    target_audience_image_scale: Optional[float] = None
    product_text: Optional[str] = None
    product_images: list[ProductImage] = field(default_factory=list)
    product_image_scale: Optional[float] = None
    product_image_max_height: Optional[float] = None
    product_images_fit: Optional[str] = None
    supply_conditions: list[str] = field(default_factory=list)
    show_totals: bool = True
    show_bank_info: bool = True

    owner_user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_new(self) -> bool:
        return self.id is None


@dataclass
class SettingsData:
    company_name: str = ""
    company_address: str = ""
    company_vat: str = ""
    company_email: str = ""
    company_phone: str = ""
    bank_info: str = ""
    logo_data: Optional[str] = None
    logo_url: Optional[str] = None
    signature_image: Optional[str] = None
    signature_scale: Optional[float] = None
    contract_pages_text: str = ""
    quote_number_prefix: str = ""
    next_quote_number: int = 1
    default_vat: float = 22.0
    default_hardware_image: Optional[str] = None
    default_hardware_image_height: Optional[float] = None
    default_software_image: Optional[str] = None
    default_software_image_scale: Optional[float] = None
    default_target_image: Optional[str] = None
    default_target_image_scale: Optional[float] = None
    default_product_image_scale: Optional[float] = None
    default_product_image_max_height: Optional[float] = None
    attachments_position: Optional[str] = None
    attachment_layout: AttachmentLayout = field(default_factory=AttachmentLayout)


@dataclass(frozen=True)
class ArticleData:
    id: int
    code: str
    description: str
    unit: str
    unit_price: float
    vat: float


@dataclass(frozen=True)
class CustomerData:
    id: int
    name: str
    address: str
    vat_id: str


# ---------------------------
# Record conversion
# ---------------------------

def quote_from_record(record: Quote) -> QuoteData:
    return QuoteData(
        id=record.id,
        number=record.number or "",
        date=record.date or date.today(),
        customer=CustomerSnapshot(
            name=record.customer_name or "",
            address=record.customer_address or "",
            vat_id=record.customer_vat or "",
        ),
        items=[
            LineItem(
                code=line.code or "",
                description=line.description or "",
                quantity=_float(line.quantity),
                unit_price=_float(line.unit_price),
                vat_rate=_float(line.vat),
                total=_float(line.total),
                article_id=line.article_id,
            )
            for line in record.lines
        ],
        subtotal=_float(record.subtotal),
        vat_total=_float(record.vat_total),
        total=_float(record.total),
        notes=record.notes or "",
        leasing=LeasingPlan.from_dict(record.leasing),
        attachments=[
            Attachment(
                title=att.title or "",
                description=att.description or "",
                image=att.image_data,
                layout=AttachmentLayout(
                    image_position=att.image_position,
                    image_height=_optional_float(att.image_height),
                    description_font_size=_optional_float(att.description_font_size),
                    description_color=att.description_color,
                    show_title=att.show_title,
                    full_page_image=att.full_page_image,
                ),
            )
            for att in record.attachments
        ],
        attachments_position=record.attachments_position,
        toc_text=record.toc_text,
        toc_text_below=record.toc_text_below,
        premise_text=record.premise_text,
        premise_hardware_images=list(record.premise_hardware_images or []),
        premise_hardware_image_height=_optional_float(record.premise_hardware_image_height),
        software_text=record.software_text,
        software_images=list(record.software_images or []),
        software_image_height=_optional_float(record.software_image_height),
        software_image_scale=_optional_float(record.software_image_scale),
        target_audience_images=list(record.target_audience_images or []),
        target_audience_image_height=_optional_float(record.target_audience_image_height),
        target_audience_image_scale=_optional_float(record.target_audience_image_scale),
        product_text=record.product_text,
        product_images=[
            ProductImage(src=str(p.get("src") or ""), caption=str(p.get("caption") or ""))
            for p in (record.product_images or [])
            if isinstance(p, dict)
        ],
        product_image_scale=_optional_float(record.product_image_scale),
        product_image_max_height=_optional_float(record.product_image_max_height),
        product_images_fit=record.product_images_fit,
        supply_conditions=[str(c) for c in (record.supply_conditions or [])],
        show_totals=record.show_totals if record.show_totals is not None else True,
        show_bank_info=record.show_bank_info if record.show_bank_info is not None else True,
        owner_user_id=record.owner_user_id,
        created_at=record.created_at,
        deleted_at=record.deleted_at,
    )


def fill_quote_record(record: Quote, quote: QuoteData) -> None:
    """Copy every editable field of ``quote`` onto ``record`` (number excluded)."""
    record.date = quote.date
    record.customer_name = quote.customer.name.strip()
    record.customer_address = quote.customer.address or ""
    record.customer_vat = quote.customer.vat_id or ""
    record.subtotal = quote.subtotal
    record.vat_total = quote.vat_total
    record.total = quote.total
    record.notes = quote.notes or ""
    record.leasing = quote.leasing.to_dict() if quote.leasing is not None else None
    record.attachments_position = quote.attachments_position
    record.toc_text = quote.toc_text
    record.toc_text_below = quote.toc_text_below
    record.premise_text = quote.premise_text
    record.premise_hardware_images = list(quote.premise_hardware_images)
    record.premise_hardware_image_height = quote.premise_hardware_image_height
    record.software_text = quote.software_text
    record.software_images = list(quote.software_images)
    record.software_image_height = quote.software_image_height
    record.software_image_scale = quote.software_image_scale
    record.target_audience_images = list(quote.target_audience_images)
    record.target_audience_image_height = quote.target_audience_image_height
    record.target_audience_image_scale = quote.target_audience_image_scale
    record.product_text = quote.product_text
    record.product_images = [{"src": p.src, "caption": p.caption} for p in quote.product_images]
    record.product_image_scale = quote.product_image_scale
    record.product_image_max_height = quote.product_image_max_height
    record.product_images_fit = quote.product_images_fit
    record.supply_conditions = list(quote.supply_conditions)
    record.show_totals = bool(quote.show_totals)
    record.show_bank_info = bool(quote.show_bank_info)

    record.lines.clear()
    for position, item in enumerate(quote.items):
        record.lines.append(
            QuoteLine(
                position=position,
                article_id=item.article_id,
                code=item.code or "",
                description=item.description or "",
                quantity=item.quantity,
                unit_price=item.unit_price,
                vat=item.vat_rate,
                total=item.total,
            )
        )

    record.attachments.clear()
    for position, att in enumerate(quote.attachments):
        record.attachments.append(
            QuoteAttachment(
                position=position,
                title=att.title or "",
                description=att.description or "",
                image_data=att.image,
                image_position=att.layout.image_position,
                image_height=att.layout.image_height,
                description_font_size=att.layout.description_font_size,
                description_color=att.layout.description_color,
                show_title=att.layout.show_title,
                full_page_image=att.layout.full_page_image,
            )
        )


def settings_from_record(record: CompanySettings) -> SettingsData:
    return SettingsData(
        company_name=record.company_name or "",
        company_address=record.company_address or "",
        company_vat=record.company_vat or "",
        company_email=record.company_email or "",
        company_phone=record.company_phone or "",
        bank_info=record.bank_info or "",
        logo_data=record.logo_data,
        logo_url=record.logo_url,
        signature_image=record.signature_image,
        signature_scale=_optional_float(record.signature_scale),
        contract_pages_text=record.contract_pages_text or "",
        quote_number_prefix=record.quote_number_prefix or "",
        next_quote_number=int(record.next_quote_number or 1),
        default_vat=_float(record.default_vat, 22.0),
        default_hardware_image=record.default_hardware_image,
        default_hardware_image_height=_optional_float(record.default_hardware_image_height),
        default_software_image=record.default_software_image,
        default_software_image_scale=_optional_float(record.default_software_image_scale),
        default_target_image=record.default_target_image,
        default_target_image_scale=_optional_float(record.default_target_image_scale),
        default_product_image_scale=_optional_float(record.default_product_image_scale),
        default_product_image_max_height=_optional_float(record.default_product_image_max_height),
        attachments_position=record.attachments_position,
        attachment_layout=AttachmentLayout.from_dict(record.attachment_layout),
    )


def article_from_record(record: Article) -> ArticleData:
    return ArticleData(
        id=record.id,
        code=record.code or "",
        description=record.description or "",
        unit=record.unit or "",
        unit_price=_float(record.unit_price),
        vat=_float(record.vat),
    )


def customer_from_record(record: Customer) -> CustomerData:
    return CustomerData(
        id=record.id,
        name=record.name or "",
        address=record.address or "",
        vat_id=record.vat_id or "",
    )


def _float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return _float(value)


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None
