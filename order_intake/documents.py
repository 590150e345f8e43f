"""
documents.py — Purchase Order Generation

Prices a list of reserved lines for the buyer's tier and renders the result as
a one-or-more page PDF with reportlab.

Pricing always uses the name/price snapshot taken by the reservation engine;
prices the client may have sent along with its cart are never looked at.
"""
from __future__ import annotations

import io
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import List, Optional, Sequence

from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .logging_config import get_logger
from .models import OrderRequest, ReservedLineItem, Tier

log = get_logger(__name__)

CENT = Decimal("0.01")
MARGIN = 40
CLOSING_NOTE = "Thank you! We will confirm availability and send an invoice link for remote payment."


def money(value: Decimal) -> str:
    return f"${value:,.2f}"


@dataclass(frozen=True)
class PricedLine:
    sku: str
    name: str
    qty: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class PurchaseOrder:
    """Priced order ready for rendering."""
    reference: str
    tier: Tier
    tax_rate: Decimal
    lines: List[PricedLine]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    pdf: bytes = b""

    @property
    def filename(self) -> str:
        return f"PO_{self.reference}.pdf"


def price_lines(reference: str, lines: Sequence[ReservedLineItem], tier: Tier,
                tax_rate: Decimal) -> PurchaseOrder:
    """
    Compute per-line totals, subtotal, tax and total.

    Unit prices and tax are rounded half-up to whole cents; total = subtotal + tax.
    """
    priced = []
    for line in lines:
        unit = Decimal(line.unit_price(tier)).quantize(CENT, rounding=ROUND_HALF_UP)
        line_total = (unit * line.qty).quantize(CENT, rounding=ROUND_HALF_UP)
        priced.append(PricedLine(line.sku, line.name, line.qty, unit, line_total))

    subtotal = sum((p.line_total for p in priced), Decimal("0.00"))
    tax = (subtotal * Decimal(tax_rate)).quantize(CENT, rounding=ROUND_HALF_UP)
    return PurchaseOrder(
        reference=reference,
        tier=tier,
        tax_rate=Decimal(tax_rate),
        lines=priced,
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
    )


class _Page:
    """Top-down text cursor over a reportlab canvas that starts new pages as needed."""

    def __init__(self, pdf: canvas.Canvas):
        self.pdf = pdf
        self.width, self.height = letter
        self.y = self.height - MARGIN

    def line(self, text: str, size: int = 10, right: bool = False, gap: float = 1.4) -> None:
        if self.y < MARGIN + size:
            self.pdf.showPage()
            self.y = self.height - MARGIN
        self.pdf.setFont("Helvetica", size)
        if right:
            self.pdf.drawRightString(self.width - MARGIN, self.y - size, text)
        else:
            self.pdf.drawString(MARGIN, self.y - size, text)
        self.y -= size * gap

    def space(self, points: float = 10) -> None:
        self.y -= points

    def rule(self) -> None:
        self.pdf.line(MARGIN, self.y, self.width - MARGIN, self.y)
        self.y -= 8


def _draw_logo(pdf: canvas.Canvas, logo_path: Optional[Path]) -> None:
    if not logo_path:
        return
    if not Path(logo_path).is_file():
        log.warning(f"PO logo {logo_path} not found, skipped")
        return
    try:
        image = ImageReader(str(logo_path))
        img_w, img_h = image.getSize()
        width = 120
        height = width * img_h / img_w
        pdf.drawImage(image, MARGIN, letter[1] - 30 - height, width=width, height=height, mask="auto")
    except OSError as e:
        log.warning(f"PO logo {logo_path} skipped: {e}")


def render_pdf(order: OrderRequest, po: PurchaseOrder, store_name: str,
               logo_path: Optional[Path] = None, now: Optional[datetime] = None) -> bytes:
    """
    Render the purchase order PDF.

    Args:
        order: The buyer's request (contact block and PO reference).
        po: Priced lines and totals from `price_lines`.
        store_name: Seller name printed in the header.
        logo_path: Optional branding image; a missing or unreadable file is skipped.
        now: Timestamp printed on the document (defaults to the current time).

    Returns:
        bytes: The PDF document.
    """
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    pdf.setTitle(f"Purchase Order {po.reference}")
    pdf.setAuthor(store_name)

    _draw_logo(pdf, logo_path)
    page = _Page(pdf)
    page.line(f"Purchase Order – {store_name}", size=18, right=True)
    page.line(f"Date: {(now or datetime.now()).strftime('%Y-%m-%d %H:%M')}", right=True)
    page.line(f"Reference: {po.reference}", right=True)
    page.space(40)

    page.line(store_name, size=14)
    page.line("Quick Order — Mobile")
    page.space()
    page.line("Bill To:", size=11)
    for field in (order.company, order.name, order.email, order.phone, order.address):
        page.line(field or "", size=11)
    page.space()
    if order.po:
        page.line(f"PO / Job #: {order.po}", size=11)
    page.line(f"Pricing Tier: {po.tier.value}", size=11)
    page.space(4)
    page.rule()

    for line in po.lines:
        page.line(f"{line.name} (SKU {line.sku})", gap=1.2)
        page.line(f"Qty: {line.qty}  @ {money(line.unit_price)}  = {money(line.line_total)}")
        page.space(3)

    page.space()
    rate = (po.tax_rate * 100).normalize()
    page.line(f"Subtotal: {money(po.subtotal)}", size=12)
    page.line(f"Tax ({rate:f}%): {money(po.tax)}", size=12)
    page.line(f"Total: {money(po.total)}", size=12)
    page.space()
    page.line(CLOSING_NOTE)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def build_purchase_order(reference: str, order: OrderRequest, lines: Sequence[ReservedLineItem],
                         tier: Tier, tax_rate: Decimal, store_name: str,
                         logo_path: Optional[Path] = None) -> PurchaseOrder:
    """Price the reserved lines and attach the rendered PDF."""
    po = price_lines(reference, lines, tier, tax_rate)
    pdf = render_pdf(order, po, store_name=store_name, logo_path=logo_path)
    log.info(f"[Order: {reference}] PO rendered: {len(po.lines)} lines, total {money(po.total)} ({len(pdf)} bytes)")
    return replace(po, pdf=pdf)
