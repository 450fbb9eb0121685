from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Optional, Union

from reportlab.lib.pagesizes import A4

from services.document_model import RenderableQuote, ResolvedAttachment, SectionImage
from services.leasing import kind_label, periodicity_label
from services.quote_model import LeasingPlan, LineItem
from services.totals import to_amount
from ui.i18n import t


PAGE_WIDTH, PAGE_HEIGHT = A4
PAGE_MARGIN = 40.0
CONTENT_WIDTH = PAGE_WIDTH - 2 * PAGE_MARGIN
COLUMN_GAP = 12.0

SECTION_ATTACHMENT = "attachment"
SECTION_INDEX = "index"
SECTION_SOFTWARE = "software"
SECTION_PRODUCTS = "products"
SECTION_OFFER = "offer"
SECTION_CONTRACT = "contract"


# ---------------------------
# Content blocks
# ---------------------------

@dataclass(frozen=True)
class Heading:
    text: str
    level: int = 1
    anchor: Optional[str] = None


@dataclass(frozen=True)
class TextBlock:
    text: str
    style: str = "body"
    font_size: Optional[float] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class ImageBlock:
    src: str
    width: float
    max_height: Optional[float] = None
    fit: str = "contain"


@dataclass(frozen=True)
class TocEntry:
    title: str
    anchor: str
    page: int = 0


@dataclass(frozen=True)
class TocBlock:
    entries: tuple[TocEntry, ...]


@dataclass(frozen=True)
class CustomerBlock:
    name: str
    address: str
    vat_id: str


@dataclass(frozen=True)
class ItemRow:
    code: str
    description: str
    quantity: str
    unit_price: str
    total: str


@dataclass(frozen=True)
class ItemTable:
    rows: tuple[ItemRow, ...]


@dataclass(frozen=True)
class TotalsBlock:
    subtotal: str
    vat_total: str
    total: str


@dataclass(frozen=True)
class LeasingBlock:
    title: str
    left: tuple[tuple[str, str], ...]
    right: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class BankInfoBlock:
    text: str


@dataclass(frozen=True)
class NumberedList:
    items: tuple[str, ...]


@dataclass(frozen=True)
class DateLine:
    text: str


@dataclass(frozen=True)
class SignatureBlock:
    company_label: str
    customer_label: str
    image: Optional[str] = None
    image_width: float = 0.0


@dataclass(frozen=True)
class Columns:
    left: tuple["Block", ...]
    right: tuple["Block", ...]
    gap: float = COLUMN_GAP


Block = Union[
    Heading,
    TextBlock,
    ImageBlock,
    TocBlock,
    CustomerBlock,
    ItemTable,
    TotalsBlock,
    LeasingBlock,
    BankInfoBlock,
    NumberedList,
    DateLine,
    SignatureBlock,
    Columns,
]


# ---------------------------
# Pages
# ---------------------------

@dataclass(frozen=True)
class PageSpec:
    section: str
    blocks: tuple[Block, ...]
    decorated: bool = True
    full_bleed: bool = False
    anchor: Optional[str] = None
    number: int = 0
    # decorated layout used when a full-bleed image cannot be loaded
    fallback: tuple[Block, ...] = ()


@dataclass(frozen=True)
class Decoration:
    company_name: str
    company_lines: tuple[str, ...]
    logo: Optional[str]
    number_text: str
    date_text: str
    footer_text: str


@dataclass(frozen=True)
class ComposedDocument:
    title: str
    decoration: Decoration
    pages: tuple[PageSpec, ...] = field(default_factory=tuple)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def sections(self) -> list[str]:
        return [page.section for page in self.pages]

    def page_label(self, page: PageSpec) -> str:
        return t("doc_page", page=page.number, total=self.page_count)


# ---------------------------
# Formatting
# ---------------------------

def format_money(value: Any) -> str:
    """Italian currency format: ``€ 1.234,56``."""
    amount = f"{to_amount(value):,.2f}"
    return "€ " + amount.replace(",", "_").replace(".", ",").replace("_", ".")


def format_number(value: Any) -> str:
    number = to_amount(value)
    if number == int(number):
        return str(int(number))
    return f"{number:.4f}".rstrip("0").rstrip(".").replace(".", ",")


def format_percent(value: Any) -> str:
    return f"{format_number(value)}%"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def scaled_width(scale: float) -> float:
    return min(CONTENT_WIDTH * max(scale, 0.0) / 100.0, CONTENT_WIDTH)


# ---------------------------
# Composition
# ---------------------------

def compose(doc: RenderableQuote) -> ComposedDocument:
    """Turn a resolved document into its ordered page sequence.

    Sections whose content resolves to nothing produce no page, heading or
    index entry. Never raises for missing optional data.
    """
    attachment_pages = [_attachment_page(att, i == 0) for i, att in enumerate(doc.attachments)]

    pages: list[PageSpec] = []
    if doc.attachments_position == "before":
        pages.extend(attachment_pages)
    pages.append(_index_page(doc))
    pages.append(_software_page(doc))
    pages.extend(_product_pages(doc))
    pages.append(_offer_page(doc))
    if doc.attachments_position != "before":
        pages.extend(attachment_pages)
    pages.extend(_contract_pages(doc))

    numbered = [replace(page, number=i) for i, page in enumerate(pages, start=1)]
    numbered = _fill_toc(numbered)

    return ComposedDocument(
        title=f"{t('doc_quote')} {doc.number}",
        decoration=_decoration(doc),
        pages=tuple(numbered),
    )


def _decoration(doc: RenderableQuote) -> Decoration:
    company = doc.company
    lines = [company.address]
    if company.vat:
        lines.append(t("doc_vat_id", vat=company.vat))
    lines.extend([company.email, company.phone])
    footer = [company.name, company.address]
    if company.vat:
        footer.append(f"P.IVA {company.vat}")
    return Decoration(
        company_name=company.name,
        company_lines=tuple(line for line in lines if line),
        logo=company.logo,
        number_text=t("doc_number", number=doc.number),
        date_text=t("doc_date", date=format_date(doc.date)),
        footer_text=" - ".join(part for part in footer if part),
    )


def _toc_entries(doc: RenderableQuote) -> list[TocEntry]:
    entries: list[TocEntry] = []
    if doc.attachments and doc.attachments_position == "before":
        entries.append(TocEntry(t("doc_attachments"), "attachments"))
    if doc.premise_text or doc.hardware_image:
        entries.append(TocEntry(t("doc_premise"), "premise"))
    entries.append(TocEntry(t("doc_software"), "software"))
    if doc.target_image:
        entries.append(TocEntry(t("doc_target"), "target"))
    if doc.product_images:
        entries.append(TocEntry(t("doc_products"), "products"))
    entries.append(TocEntry(t("doc_offer"), "offer"))
    if doc.attachments and doc.attachments_position != "before":
        entries.append(TocEntry(t("doc_attachments"), "attachments"))
    if doc.contract_pages:
        entries.append(TocEntry(t("doc_contract"), "contract"))
    return entries


def _index_page(doc: RenderableQuote) -> PageSpec:
    blocks: list[Block] = []
    if doc.toc_text:
        blocks.append(TextBlock(doc.toc_text))
    blocks.append(Heading(t("doc_index"), anchor="index"))
    blocks.append(TocBlock(tuple(_toc_entries(doc))))
    if doc.toc_text_below:
        blocks.append(TextBlock(doc.toc_text_below))
    if doc.premise_text or doc.hardware_image:
        blocks.append(Heading(t("doc_premise"), anchor="premise"))
        if doc.premise_text:
            blocks.append(TextBlock(doc.premise_text))
        if doc.hardware_image:
            blocks.append(_section_image_block(doc.hardware_image, CONTENT_WIDTH))
    return PageSpec(section=SECTION_INDEX, blocks=tuple(blocks), anchor="index")


def _software_page(doc: RenderableQuote) -> PageSpec:
    blocks: list[Block] = [Heading(t("doc_software"), anchor="software")]
    if doc.software_image:
        blocks.append(_section_image_block(doc.software_image, scaled_width(doc.software_image.scale)))
    blocks.append(TextBlock(doc.software_text))
    if doc.target_image:
        blocks.append(Heading(t("doc_target"), anchor="target"))
        blocks.append(_section_image_block(doc.target_image, scaled_width(doc.target_image.scale)))
    return PageSpec(section=SECTION_SOFTWARE, blocks=tuple(blocks), anchor="software")


def _product_pages(doc: RenderableQuote) -> list[PageSpec]:
    pages: list[PageSpec] = []
    width = scaled_width(doc.product_image_scale)
    for index, image in enumerate(doc.product_images):
        blocks: list[Block] = []
        if index == 0:
            blocks.append(Heading(t("doc_products"), anchor="products"))
            if doc.product_text:
                blocks.append(TextBlock(doc.product_text))
        blocks.append(
            ImageBlock(
                src=image.src,
                width=width,
                max_height=doc.product_image_max_height,
                fit=doc.product_images_fit,
            )
        )
        if image.caption:
            blocks.append(TextBlock(image.caption, style="caption"))
        pages.append(
            PageSpec(
                section=SECTION_PRODUCTS,
                blocks=tuple(blocks),
                anchor="products" if index == 0 else None,
            )
        )
    return pages


def _offer_page(doc: RenderableQuote) -> PageSpec:
    blocks: list[Block] = [
        Heading(t("doc_offer"), anchor="offer"),
        CustomerBlock(doc.customer.name or "", doc.customer.address or "", doc.customer.vat_id or ""),
        ItemTable(tuple(_item_row(item) for item in doc.items)),
    ]
    if doc.show_totals:
        blocks.append(
            TotalsBlock(
                subtotal=format_money(doc.subtotal),
                vat_total=format_money(doc.vat_total),
                total=format_money(doc.total),
            )
        )
    if doc.leasing is not None:
        blocks.append(_leasing_block(doc.leasing))
    if doc.company.bank_info and doc.show_bank_info:
        blocks.append(BankInfoBlock(doc.company.bank_info))
    if doc.notes:
        blocks.append(TextBlock(doc.notes, style="notes"))
    if doc.supply_conditions:
        blocks.append(Heading(t("doc_conditions"), level=2))
        blocks.append(NumberedList(tuple(doc.supply_conditions)))
    blocks.append(DateLine(t("doc_place_date", date=format_date(doc.date))))
    signature = doc.company.signature_image
    blocks.append(
        SignatureBlock(
            company_label=t("doc_company_signature"),
            customer_label=t("doc_customer_signature"),
            image=signature,
            image_width=_signature_width(doc.company.signature_scale) if signature else 0.0,
        )
    )
    return PageSpec(section=SECTION_OFFER, blocks=tuple(blocks), anchor="offer")


def _item_row(item: LineItem) -> ItemRow:
    return ItemRow(
        code=str(item.code or ""),
        description=str(item.description or ""),
        quantity=format_number(item.quantity),
        unit_price=format_money(item.unit_price),
        total=format_money(item.total),
    )


def _leasing_block(plan: LeasingPlan) -> LeasingBlock:
    left = [
        (t("asset_value"), format_money(plan.asset_value)),
        (t("leasing_vat_rate"), format_percent(plan.vat_rate)),
        (t("vat_amount"), format_money(plan.vat_amount)),
        (t("total_vat_incl"), format_money(plan.total_asset_value_vat_incl)),
    ]
    if plan.down_payment_value is not None:
        left.append((t("down_payment_value"), format_money(plan.down_payment_value)))
    if plan.down_payment_percent is not None:
        left.append((t("down_payment_percent"), format_percent(plan.down_payment_percent)))
    if plan.net_financed_capital is not None:
        left.append((t("net_financed_capital"), format_money(plan.net_financed_capital)))

    right: list[tuple[str, str]] = []
    if plan.duration_months is not None:
        right.append((t("duration_months"), t("doc_months", count=format_number(plan.duration_months))))
    if plan.installment_count is not None:
        right.append((t("installment_count"), format_number(plan.installment_count)))
    if plan.installment_amount is not None:
        right.append((t("installment_amount"), format_money(plan.installment_amount)))
    right.append((t("periodicity"), periodicity_label(plan.periodicity)))
    if plan.start_date is not None:
        right.append((t("start_date"), format_date(plan.start_date)))
    if plan.first_installment_date is not None:
        right.append((t("first_installment_date"), format_date(plan.first_installment_date)))
    return LeasingBlock(title=kind_label(plan.kind), left=tuple(left), right=tuple(right))


def _signature_width(scale: float) -> float:
    # 100% equals a signature box of 160pt
    return min(160.0 * scale / 100.0, (CONTENT_WIDTH - COLUMN_GAP) / 2)


def _attachment_blocks(att: ResolvedAttachment) -> tuple[Block, ...]:
    blocks: list[Block] = []
    if att.show_title and att.title:
        blocks.append(Heading(att.title, level=2))
    description = (
        TextBlock(att.description, font_size=att.description_font_size, color=att.description_color)
        if att.description
        else None
    )
    if att.image_position in ("left", "right"):
        column_width = (CONTENT_WIDTH - COLUMN_GAP) / 2
        image_col: tuple[Block, ...] = ()
        if att.image:
            image_col = (ImageBlock(att.image, column_width, att.image_height, fit="cover"),)
        text_col: tuple[Block, ...] = (description,) if description else ()
        if att.image_position == "left":
            blocks.append(Columns(left=image_col, right=text_col))
        else:
            blocks.append(Columns(left=text_col, right=image_col))
    else:
        image = ImageBlock(att.image, CONTENT_WIDTH, att.image_height, fit="cover") if att.image else None
        ordered = [image, description] if att.image_position == "top" else [description, image]
        blocks.extend(b for b in ordered if b is not None)
    return tuple(blocks)


def _attachment_page(att: ResolvedAttachment, first: bool) -> PageSpec:
    anchor = "attachments" if first else None
    if att.full_page_image and att.image:
        return PageSpec(
            section=SECTION_ATTACHMENT,
            blocks=(ImageBlock(src=att.image, width=PAGE_WIDTH, max_height=PAGE_HEIGHT, fit="cover"),),
            decorated=False,
            full_bleed=True,
            anchor=anchor,
            fallback=_attachment_blocks(att),
        )
    return PageSpec(section=SECTION_ATTACHMENT, blocks=_attachment_blocks(att), anchor=anchor)


def _contract_pages(doc: RenderableQuote) -> list[PageSpec]:
    return [
        PageSpec(
            section=SECTION_CONTRACT,
            blocks=(TextBlock(text, style="contract"),),
            anchor="contract" if index == 0 else None,
        )
        for index, text in enumerate(doc.contract_pages)
    ]


def _section_image_block(image: SectionImage, width: float) -> ImageBlock:
    return ImageBlock(src=image.src, width=width, max_height=image.max_height)


def _fill_toc(pages: list[PageSpec]) -> list[PageSpec]:
    """Set the page number of every index entry from the anchors of the pages."""
    anchors: dict[str, int] = {}
    for page in pages:
        if page.anchor and page.anchor not in anchors:
            anchors[page.anchor] = page.number
        for block in page.blocks:
            if isinstance(block, Heading) and block.anchor and block.anchor not in anchors:
                anchors[block.anchor] = page.number

    out: list[PageSpec] = []
    for page in pages:
        if not any(isinstance(b, TocBlock) for b in page.blocks):
            out.append(page)
            continue
        blocks = tuple(
            TocBlock(tuple(replace(e, page=anchors.get(e.anchor, 0)) for e in b.entries))
            if isinstance(b, TocBlock)
            else b
            for b in page.blocks
        )
        out.append(replace(page, blocks=blocks))
    return out


__all__ = [
    "PAGE_WIDTH",
    "PAGE_HEIGHT",
    "PAGE_MARGIN",
    "CONTENT_WIDTH",
    "Heading",
    "TextBlock",
    "ImageBlock",
    "TocEntry",
    "TocBlock",
    "CustomerBlock",
    "ItemRow",
    "ItemTable",
    "TotalsBlock",
    "LeasingBlock",
    "BankInfoBlock",
    "NumberedList",
    "DateLine",
    "SignatureBlock",
    "Columns",
    "PageSpec",
    "Decoration",
    "ComposedDocument",
    "compose",
    "format_money",
    "format_number",
    "format_date",
]
