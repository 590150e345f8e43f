"""Tests for purchase order pricing and PDF rendering."""

from decimal import Decimal

from reportlab.pdfgen import canvas

from order_intake.documents import build_purchase_order, price_lines, render_pdf
from order_intake.models import OrderRequest, ReservedLineItem, Tier


def line(sku, retail, contractor, qty, name=None):
    return ReservedLineItem(
        sku=sku,
        name=name or sku,
        price_retail=Decimal(retail),
        price_contractor=Decimal(contractor),
        qty=qty,
    )


ORDER = OrderRequest(name="Jo Hale", email="jo@hale.test", company="Hale Builders", po="JOB-77")


class TestPriceLines:

    def test_retail_totals(self):
        po = price_lines("REF1", [line("WDG-1", "9.00", "7.00", 4)], Tier.RETAIL, Decimal("0.0925"))

        assert po.subtotal == Decimal("36.00")
        assert po.tax == Decimal("3.33")
        assert po.total == Decimal("39.33")
        assert po.filename == "PO_REF1.pdf"

    def test_tier_selects_price_per_line(self):
        lines = [line("A", "10.00", "8.00", 2), line("B", "1.25", "1.00", 3)]

        retail = price_lines("R", lines, Tier.RETAIL, Decimal("0.0925"))
        contractor = price_lines("C", lines, Tier.CONTRACTOR, Decimal("0.0925"))

        assert [p.line_total for p in retail.lines] == [Decimal("20.00"), Decimal("3.75")]
        assert [p.line_total for p in contractor.lines] == [Decimal("16.00"), Decimal("3.00")]
        assert contractor.subtotal == Decimal("19.00")

    def test_tax_rounds_half_up(self):
        # 10.00 * 0.0925 = 0.925 -> 0.93
        po = price_lines("R", [line("A", "10.00", "10.00", 1)], Tier.RETAIL, Decimal("0.0925"))

        assert po.tax == Decimal("0.93")
        assert po.total == Decimal("10.93")

    def test_unit_prices_round_half_up(self):
        po = price_lines("R", [line("A", "1.005", "1.005", 2)], Tier.RETAIL, Decimal("0"))

        assert po.lines[0].unit_price == Decimal("1.01")
        assert po.lines[0].line_total == Decimal("2.02")

    def test_zero_tax_rate(self):
        po = price_lines("R", [line("A", "5.50", "5.00", 2)], Tier.RETAIL, Decimal("0"))

        assert po.tax == Decimal("0.00")
        assert po.total == Decimal("11.00")


class TestRenderPdf:

    def test_renders_pdf_document(self):
        po = price_lines("REF1", [line("WDG-1", "9.00", "7.00", 4, name="Widget")], Tier.RETAIL, Decimal("0.0925"))

        pdf = render_pdf(ORDER, po, store_name="The Marlowe Collection")

        assert pdf.startswith(b"%PDF")
        assert pdf.rstrip().endswith(b"%%EOF")

    def test_long_orders_span_pages(self, monkeypatch):
        pages = []
        original = canvas.Canvas.showPage

        def counting_show_page(pdf):
            pages.append(pdf.getPageNumber())
            original(pdf)

        monkeypatch.setattr(canvas.Canvas, "showPage", counting_show_page)
        lines = [line(f"SKU-{i:03d}", "1.00", "1.00", 1) for i in range(120)]
        po = price_lines("LONG", lines, Tier.RETAIL, Decimal("0.0925"))

        pdf = render_pdf(ORDER, po, store_name="The Marlowe Collection")

        assert pdf.startswith(b"%PDF")
        assert len(pages) >= 2

    def test_missing_logo_is_skipped(self, tmp_path):
        po = price_lines("REF1", [line("WDG-1", "9.00", "7.00", 1)], Tier.RETAIL, Decimal("0.0925"))

        pdf = render_pdf(ORDER, po, store_name="Store", logo_path=tmp_path / "nope.png")

        assert pdf.startswith(b"%PDF")


def test_build_purchase_order_attaches_pdf():
    po = build_purchase_order("REF9", ORDER, [line("WDG-1", "9.00", "7.00", 2)], Tier.CONTRACTOR,
                              tax_rate=Decimal("0.0925"), store_name="Store")

    assert po.subtotal == Decimal("14.00")
    assert po.pdf.startswith(b"%PDF")
