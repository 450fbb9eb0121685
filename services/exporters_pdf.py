from __future__ import annotations

import logging
from dataclasses import replace
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Union
from xml.sax.saxutils import escape

import requests
from PIL import Image as PILImage, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    BaseDocTemplate,
    Flowable,
    Frame,
    KeepInFrame,
    ListFlowable,
    ListItem,
    NextPageTemplate,
    PageBreak,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)
from reportlab.platypus.flowables import AnchorFlowable

from paths import get_assets_dir
from services.compositor import (
    CONTENT_WIDTH,
    PAGE_HEIGHT,
    PAGE_MARGIN,
    PAGE_WIDTH,
    BankInfoBlock,
    Block,
    Columns,
    ComposedDocument,
    CustomerBlock,
    DateLine,
    Heading,
    ImageBlock,
    ItemTable,
    LeasingBlock,
    NumberedList,
    PageSpec,
    SignatureBlock,
    TextBlock,
    TocBlock,
    TotalsBlock,
)
from services.images import PREVIEW_PREFIX, decode_data_url, is_valid_image_src
from ui.i18n import t


logger = logging.getLogger("preventivi.pdf")

HEADER_HEIGHT = 90.0
FOOTER_HEIGHT = 36.0
CONTENT_FRAME_HEIGHT = PAGE_HEIGHT - 2 * PAGE_MARGIN - HEADER_HEIGHT - FOOTER_HEIGHT
LOGO_WIDTH = 120.0
LOGO_HEIGHT = 60.0
IMAGE_TIMEOUT = 10

ACCENT = colors.HexColor("#2563eb")
TEXT = colors.HexColor("#333333")
MUTED = colors.HexColor("#6b7280")
RULE = colors.HexColor("#eeeeee")
PANEL = colors.HexColor("#f9fafb")
BANK_PANEL = colors.HexColor("#f3f4f6")


# ---------------------------
# Images
# ---------------------------

def load_image(src: str) -> Optional[PILImage.Image]:
    """Fetch an image reference for drawing; unusable references give ``None``."""
    if not is_valid_image_src(src):
        return None
    src = src.strip()
    if src.lower().startswith(PREVIEW_PREFIX):
        # Preview references only exist inside the editor session.
        return None
    try:
        if src.lower().startswith("data:"):
            payload = decode_data_url(src)
        elif src.lower().startswith(("http://", "https://")):
            response = requests.get(src, timeout=IMAGE_TIMEOUT)
            response.raise_for_status()
            payload = response.content
        else:
            candidate = get_assets_dir() / src.lstrip("/")
            payload = candidate.read_bytes() if candidate.is_file() else None
        if not payload:
            logger.warning("Image %s has no data, skipped", src[:80])
            return None
        image = PILImage.open(BytesIO(payload))
        image.load()
    except (requests.RequestException, OSError, UnidentifiedImageError) as exc:
        logger.warning("Image %s unreadable, skipped: %s", src[:80], exc)
        return None
    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA")
    return image


def crop_to_ratio(image: PILImage.Image, ratio: float) -> PILImage.Image:
    """Center-crop ``image`` to ``width / height == ratio``."""
    width, height = image.size
    if not width or not height or ratio <= 0:
        return image
    if width / height > ratio:
        new_width = int(round(height * ratio))
        left = (width - new_width) // 2
        return image.crop((left, 0, left + new_width, height))
    new_height = int(round(width / ratio))
    top = (height - new_height) // 2
    return image.crop((0, top, width, top + new_height))


class FittedImage(Flowable):
    """Image drawn inside a ``width`` x ``max_height`` box.

    ``contain`` keeps the whole image and centers it; ``cover`` fills the box
    and crops the overflow.
    """

    def __init__(self, image: PILImage.Image, width: float, max_height: Optional[float], fit: str = "contain"):
        super().__init__()
        self.image = image
        self.box_width = width
        self.max_height = max_height
        self.fit = fit
        self.draw_width = width
        self.draw_height = width
        self._avail_width = width

    def _measure(self, avail_width: float) -> tuple[float, float]:
        image_width, image_height = self.image.size
        width = min(self.box_width, avail_width)
        if self.fit == "cover" and self.max_height:
            return width, self.max_height
        height = width * image_height / image_width if image_width else 0
        if self.max_height and height > self.max_height:
            height = self.max_height
            width = height * image_width / image_height if image_height else 0
        return width, height

    def wrap(self, availWidth, availHeight):
        self._avail_width = availWidth
        self.draw_width, self.draw_height = self._measure(availWidth)
        return availWidth, self.draw_height

    def draw(self):
        image = self.image
        if self.fit == "cover" and self.draw_height:
            image = crop_to_ratio(image, self.draw_width / self.draw_height)
        x = max((self._avail_width - self.draw_width) / 2, 0)
        self.canv.drawImage(ImageReader(image), x, 0, self.draw_width, self.draw_height, mask="auto")


# ---------------------------
# Styles
# ---------------------------

def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    body = ParagraphStyle("QuoteBody", parent=base["Normal"], fontName="Helvetica", fontSize=10, leading=14, textColor=TEXT)
    return {
        "body": body,
        "h1": ParagraphStyle("QuoteH1", parent=body, fontName="Helvetica-Bold", fontSize=18, leading=22, textColor=ACCENT, spaceAfter=10),
        "h2": ParagraphStyle("QuoteH2", parent=body, fontName="Helvetica-Bold", fontSize=13, leading=17, textColor=colors.HexColor("#111827"), spaceBefore=6, spaceAfter=6),
        "caption": ParagraphStyle("QuoteCaption", parent=body, fontSize=9, textColor=MUTED, alignment=TA_CENTER, spaceBefore=4),
        "notes": ParagraphStyle("QuoteNotes", parent=body, fontSize=9, spaceBefore=8),
        "contract": ParagraphStyle("QuoteContract", parent=body, fontSize=9, leading=13.5, textColor=MUTED),
        "small": ParagraphStyle("QuoteSmall", parent=body, fontSize=8.5, leading=11),
        "small_bold": ParagraphStyle("QuoteSmallBold", parent=body, fontName="Helvetica-Bold", fontSize=8.5, leading=11),
        "right": ParagraphStyle("QuoteRight", parent=body, alignment=TA_RIGHT),
        "toc": ParagraphStyle("QuoteToc", parent=body, fontSize=11, leading=18),
    }


def _markup(text: str) -> str:
    return escape(text or "").replace("\n", "<br/>")


# ---------------------------
# Blocks
# ---------------------------

class _BlockRenderer:
    def __init__(self) -> None:
        self.styles = _styles()

    def page(self, page: PageSpec) -> list[Flowable]:
        flowables: list[Flowable] = []
        headed = {b.anchor for b in page.blocks if isinstance(b, Heading) and b.anchor}
        if page.anchor and page.anchor not in headed:
            # destination for index links
            flowables.append(AnchorFlowable(page.anchor))
        for block in page.blocks:
            flowables.extend(self.block(block))
        return flowables or [Spacer(1, 1)]

    def block(self, block: Block) -> list[Flowable]:
        if isinstance(block, Heading):
            return [self.heading(block)]
        if isinstance(block, TextBlock):
            return [self.text(block)]
        if isinstance(block, ImageBlock):
            image = self.image(block)
            return [image] if image is not None else []
        if isinstance(block, TocBlock):
            return [self.toc(block)]
        if isinstance(block, CustomerBlock):
            return [self.customer(block)]
        if isinstance(block, ItemTable):
            return [self.items(block)]
        if isinstance(block, TotalsBlock):
            return [self.totals(block)]
        if isinstance(block, LeasingBlock):
            return self.leasing(block)
        if isinstance(block, BankInfoBlock):
            return [self.bank_info(block)]
        if isinstance(block, NumberedList):
            return [self.numbered(block)]
        if isinstance(block, DateLine):
            return [Spacer(1, 12), Paragraph(_markup(block.text), self.styles["body"])]
        if isinstance(block, SignatureBlock):
            return [self.signatures(block)]
        if isinstance(block, Columns):
            return [self.columns(block)]
        logger.warning("Unknown block %s skipped", type(block).__name__)
        return []

    def heading(self, block: Heading) -> Paragraph:
        anchor = f'<a name="{block.anchor}"/>' if block.anchor else ""
        style = self.styles["h1"] if block.level <= 1 else self.styles["h2"]
        return Paragraph(f"{anchor}{_markup(block.text)}", style)

    def text(self, block: TextBlock) -> Paragraph:
        style = self.styles.get(block.style, self.styles["body"])
        if block.font_size or block.color:
            size = block.font_size or style.fontSize
            style = ParagraphStyle(
                f"{style.name}-custom",
                parent=style,
                fontSize=size,
                leading=size * 1.5,
                textColor=colors.HexColor(block.color) if block.color else style.textColor,
            )
        return Paragraph(_markup(block.text), style)

    def image(self, block: ImageBlock) -> Optional[FittedImage]:
        image = load_image(block.src)
        if image is None:
            return None
        return FittedImage(image, block.width, block.max_height, block.fit)

    def toc(self, block: TocBlock) -> Table:
        rows = [
            [
                Paragraph(f'<a href="#{entry.anchor}" color="#2563eb">{_markup(entry.title)}</a>', self.styles["toc"]),
                Paragraph(str(entry.page) if entry.page else "", self.styles["right"]),
            ]
            for entry in block.entries
        ]
        table = Table(rows, colWidths=[CONTENT_WIDTH * 0.85, CONTENT_WIDTH * 0.15], hAlign="LEFT")
        table.setStyle(
            TableStyle(
                [
                    ("LINEBELOW", (0, 0), (-1, -1), 0.25, RULE),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("LEFTPADDING", (0, 0), (-1, -1), 0),
                ]
            )
        )
        return table

    def customer(self, block: CustomerBlock) -> Table:
        lines = [f'<font color="#6b7280"><b>{escape(t("doc_recipient"))}</b></font>', f"<b>{_markup(block.name)}</b>"]
        if block.address:
            lines.append(_markup(block.address))
        if block.vat_id:
            lines.append(_markup(t("doc_customer_vat", vat=block.vat_id)))
        table = Table([[Paragraph("<br/>".join(lines), self.styles["body"])]], colWidths=[CONTENT_WIDTH])
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, -1), PANEL),
                    ("TOPPADDING", (0, 0), (-1, -1), 10),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
                    ("LEFTPADDING", (0, 0), (-1, -1), 12),
                ]
            )
        )
        return table

    def items(self, block: ItemTable) -> Table:
        small = self.styles["small"]
        data = [[t("doc_code"), t("doc_description"), t("doc_quantity"), t("doc_price"), t("doc_total")]]
        for row in block.rows:
            data.append(
                [
                    Paragraph(_markup(row.code), small),
                    Paragraph(_markup(row.description), small),
                    row.quantity,
                    row.unit_price,
                    row.total,
                ]
            )
        widths = [0.15, 0.40, 0.10, 0.15, 0.20]
        table = Table(data, colWidths=[CONTENT_WIDTH * w for w in widths], hAlign="LEFT", repeatRows=1, spaceBefore=14)
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8.5),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#4b5563")),
                    ("LINEBELOW", (0, 0), (-1, 0), 1, colors.black),
                    ("LINEBELOW", (0, 1), (-1, -1), 0.5, RULE),
                    ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("TOPPADDING", (0, 1), (-1, -1), 5),
                    ("BOTTOMPADDING", (0, 1), (-1, -1), 5),
                ]
            )
        )
        return table

    def totals(self, block: TotalsBlock) -> Table:
        data = [
            [t("doc_subtotal"), block.subtotal],
            [t("doc_vat"), block.vat_total],
            [t("doc_grand_total"), block.total],
        ]
        table = Table(data, colWidths=[CONTENT_WIDTH * 0.2, CONTENT_WIDTH * 0.2], hAlign="RIGHT", spaceBefore=14)
        table.setStyle(
            TableStyle(
                [
                    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                    ("FONTSIZE", (0, 0), (-1, -1), 10),
                    ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
                    ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                    ("FONTSIZE", (0, -1), (-1, -1), 12),
                ]
            )
        )
        return table

    def leasing(self, block: LeasingBlock) -> list[Flowable]:
        column_width = (CONTENT_WIDTH - 12) / 2

        def column(rows: tuple[tuple[str, str], ...]) -> Table:
            table = Table(
                [[Paragraph(_markup(label), self.styles["small"]), Paragraph(_markup(value), self.styles["small_bold"])] for label, value in rows]
                or [["", ""]],
                colWidths=[column_width * 0.6, column_width * 0.4],
            )
            table.setStyle(TableStyle([("LINEBELOW", (0, 0), (-1, -1), 0.25, RULE), ("LEFTPADDING", (0, 0), (-1, -1), 0)]))
            return table

        title = Paragraph(_markup(block.title), self.styles["h2"])
        layout = Table(
            [
                [Paragraph(f"<b>{escape(t('doc_economic_parameters'))}</b>", self.styles["small"]), Paragraph(f"<b>{escape(t('doc_installments'))}</b>", self.styles["small"])],
                [column(block.left), column(block.right)],
            ],
            colWidths=[column_width + 6, column_width + 6],
        )
        layout.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP"), ("LEFTPADDING", (0, 0), (-1, -1), 0)]))
        return [Spacer(1, 10), title, layout]

    def bank_info(self, block: BankInfoBlock) -> Table:
        text = f"<b>{escape(t('doc_bank_info'))}</b><br/>{_markup(block.text)}"
        table = Table([[Paragraph(text, self.styles["small"])]], colWidths=[CONTENT_WIDTH], spaceBefore=14)
        table.setStyle(TableStyle([("BACKGROUND", (0, 0), (-1, -1), BANK_PANEL), ("LEFTPADDING", (0, 0), (-1, -1), 10)]))
        return table

    def numbered(self, block: NumberedList) -> ListFlowable:
        return ListFlowable(
            [ListItem(Paragraph(_markup(item), self.styles["body"])) for item in block.items],
            bulletType="1",
            bulletFormat="%s.",
            leftIndent=16,
        )

    def signatures(self, block: SignatureBlock) -> Table:
        column_width = (CONTENT_WIDTH - 12) / 2
        company: list[Flowable] = [Paragraph(_markup(block.company_label), self.styles["small"])]
        signature = load_image(block.image) if block.image else None
        if signature is not None:
            company.append(FittedImage(signature, block.image_width, 70.0))
        else:
            company.append(Spacer(1, 50))
        customer: list[Flowable] = [Paragraph(_markup(block.customer_label), self.styles["small"]), Spacer(1, 50)]
        table = Table([[company, customer]], colWidths=[column_width, column_width], spaceBefore=16)
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LINEBELOW", (0, 0), (0, 0), 0.5, colors.grey),
                    ("LINEBELOW", (1, 0), (1, 0), 0.5, colors.grey),
                ]
            )
        )
        return table

    def columns(self, block: Columns) -> Table:
        column_width = (CONTENT_WIDTH - block.gap) / 2
        left = [f for b in block.left for f in self.block(b)] or [Spacer(1, 1)]
        right = [f for b in block.right for f in self.block(b)] or [Spacer(1, 1)]
        table = Table([[left, right]], colWidths=[column_width + block.gap / 2, column_width + block.gap / 2])
        table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP"), ("LEFTPADDING", (0, 0), (-1, -1), 0)]))
        return table


# ---------------------------
# Page decoration
# ---------------------------

def _page_decorator(composed: ComposedDocument):
    decoration = composed.decoration
    logo = load_image(decoration.logo) if decoration.logo else None

    def _apply(canvas_: canvas.Canvas, doc) -> None:
        top = PAGE_HEIGHT - PAGE_MARGIN
        left = PAGE_MARGIN
        right = PAGE_WIDTH - PAGE_MARGIN

        canvas_.saveState()
        canvas_.setFillColor(TEXT)
        canvas_.setFont("Helvetica-Bold", 13)
        canvas_.drawString(left, top - 12, decoration.company_name)
        canvas_.setFont("Helvetica", 8.5)
        y = top - 26
        for line in decoration.company_lines:
            canvas_.drawString(left, y, line)
            y -= 11

        meta_y = top - 12
        if logo is not None:
            canvas_.drawImage(
                ImageReader(logo),
                right - LOGO_WIDTH,
                top - LOGO_HEIGHT,
                LOGO_WIDTH,
                LOGO_HEIGHT,
                preserveAspectRatio=True,
                anchor="ne",
                mask="auto",
            )
            meta_y = top - LOGO_HEIGHT - 10
        canvas_.setFont("Helvetica", 9)
        canvas_.setFillColor(MUTED)
        canvas_.drawRightString(right, meta_y, decoration.number_text)
        canvas_.drawRightString(right, meta_y - 11, decoration.date_text)

        canvas_.setStrokeColor(RULE)
        canvas_.setLineWidth(1)
        rule_y = PAGE_HEIGHT - PAGE_MARGIN - HEADER_HEIGHT + 8
        canvas_.line(left, rule_y, right, rule_y)

        footer_y = PAGE_MARGIN
        canvas_.line(left, footer_y + 16, right, footer_y + 16)
        canvas_.setFont("Helvetica", 8)
        canvas_.setFillColor(colors.HexColor("#9ca3af"))
        canvas_.drawCentredString(PAGE_WIDTH / 2, footer_y + 4, decoration.footer_text)
        canvas_.drawRightString(
            right,
            footer_y - 8,
            t("doc_page", page=canvas_.getPageNumber(), total=composed.page_count),
        )
        canvas_.restoreState()

    return _apply


# ---------------------------
# Rendering
# ---------------------------

def _drawable(page: PageSpec) -> PageSpec:
    """Swap a full-bleed page whose image cannot be loaded for its decorated layout."""
    if not page.full_bleed:
        return page
    images = [b for b in page.blocks if isinstance(b, ImageBlock)]
    if images and load_image(images[0].src) is not None:
        return page
    logger.info("Full-page image unavailable, using content layout on page %s", page.number)
    return replace(page, blocks=page.fallback, full_bleed=False, decorated=True)


def render_pdf(composed: ComposedDocument, target: Union[str, Path, BinaryIO]) -> None:
    """Draw every page spec of ``composed`` as exactly one PDF page."""
    content_frame = Frame(
        PAGE_MARGIN,
        PAGE_MARGIN + FOOTER_HEIGHT,
        CONTENT_WIDTH,
        CONTENT_FRAME_HEIGHT,
        leftPadding=0,
        rightPadding=0,
        topPadding=0,
        bottomPadding=0,
        id="content",
    )
    bleed_frame = Frame(0, 0, PAGE_WIDTH, PAGE_HEIGHT, leftPadding=0, rightPadding=0, topPadding=0, bottomPadding=0, id="bleed")
    templates = {
        "content": PageTemplate(id="content", frames=[content_frame], onPage=_page_decorator(composed)),
        "bleed": PageTemplate(id="bleed", frames=[bleed_frame]),
    }

    pages = [_drawable(page) for page in composed.pages]
    first = "bleed" if pages and pages[0].full_bleed else "content"
    second = "content" if first == "bleed" else "bleed"

    doc = BaseDocTemplate(
        target if not isinstance(target, Path) else str(target),
        pagesize=(PAGE_WIDTH, PAGE_HEIGHT),
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=composed.title,
        author=composed.decoration.company_name,
    )
    doc.addPageTemplates([templates[first], templates[second]])

    renderer = _BlockRenderer()
    story: list[Flowable] = []
    for index, page in enumerate(pages):
        template = "bleed" if page.full_bleed else "content"
        if index > 0:
            story.append(NextPageTemplate(template))
            story.append(PageBreak())
        if page.full_bleed:
            width, height = PAGE_WIDTH, PAGE_HEIGHT
        else:
            width, height = CONTENT_WIDTH, CONTENT_FRAME_HEIGHT
        story.append(KeepInFrame(width, height, renderer.page(page), mode="shrink"))
    if not story:
        story.append(Spacer(1, 1))
    doc.build(story)


def render_pdf_bytes(composed: ComposedDocument) -> bytes:
    buffer = BytesIO()
    render_pdf(composed, buffer)
    return buffer.getvalue()


__all__ = ["load_image", "crop_to_ratio", "FittedImage", "render_pdf", "render_pdf_bytes"]
