"""
PDF invoice rendering with reportlab.

``InvoicePdf`` builds an A4 invoice in memory: a coloured header band with
the invoice number, a parties block (provider and client), a line-item table
and a totals block with VAT. ``build`` returns the bytes for streaming.

Usage example::

    pdf = InvoicePdf(invoice_number="INV-202610-0001", issued_at=..., due_date=...)
    pdf.add_header()
    pdf.add_parties(provider={"Name": "Acme"}, client={"Name": "Jane"})
    pdf.add_lines([("Monthly content package", 250.0)], currency="OMR")
    pdf.add_totals(subtotal=250.0, vat_rate=0.05, vat_amount=12.5, total=262.5, currency="OMR")
    data = pdf.build()
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import Any, Sequence

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import cm, mm
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

_PRIMARY = colors.HexColor("#0F766E")
_DARK = colors.HexColor("#134E4A")
_LIGHT_GREY = colors.HexColor("#F3F4F6")
_MID_GREY = colors.HexColor("#E5E7EB")
_TEXT = colors.HexColor("#111827")


def _money(value: float, currency: str) -> str:
    return f"{value:,.3f} {currency}"


class InvoicePdf:
    """Single-invoice PDF builder.

    Args:
        invoice_number: Printed in the header band and used as document title.
        issued_at: Issue timestamp.
        due_date: Payment due date, if any.
        status: Invoice status printed under the number.
    """

    def __init__(
        self,
        invoice_number: str,
        issued_at: datetime | None,
        due_date: datetime | None = None,
        status: str = "issued",
        company_name: str = "Marketplace",
    ) -> None:
        self._number = invoice_number
        self._issued_at = issued_at
        self._due_date = due_date
        self._status = status
        self._company = company_name
        self._buffer = io.BytesIO()
        self._doc = SimpleDocTemplate(
            self._buffer,
            pagesize=A4,
            rightMargin=1.8 * cm,
            leftMargin=1.8 * cm,
            topMargin=1.8 * cm,
            bottomMargin=2 * cm,
            title=f"Invoice {invoice_number}",
            author=company_name,
        )
        self._story: list[Any] = []
        self._styles = {
            "title": ParagraphStyle(
                "invoice_title", fontName="Helvetica-Bold", fontSize=18,
                textColor=colors.white, alignment=TA_LEFT,
            ),
            "subtitle": ParagraphStyle(
                "invoice_subtitle", fontName="Helvetica", fontSize=9,
                textColor=colors.white, alignment=TA_LEFT,
            ),
            "heading": ParagraphStyle(
                "heading", fontName="Helvetica-Bold", fontSize=10, textColor=_DARK,
                spaceBefore=6, spaceAfter=3,
            ),
            "cell": ParagraphStyle("cell", fontName="Helvetica", fontSize=9, textColor=_TEXT),
            "cell_right": ParagraphStyle(
                "cell_right", fontName="Helvetica", fontSize=9, textColor=_TEXT, alignment=TA_RIGHT,
            ),
            "cell_bold_right": ParagraphStyle(
                "cell_bold_right", fontName="Helvetica-Bold", fontSize=10, textColor=_DARK,
                alignment=TA_RIGHT,
            ),
        }

    def _on_page(self, canvas: Any, doc: Any) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.grey)
        canvas.drawCentredString(
            self._doc.pagesize[0] / 2, 1.2 * cm,
            f"{self._company}  |  Invoice {self._number}  |  Page {doc.page}",
        )
        canvas.restoreState()

    # -----------------------------------------------------------------------
    # Builder methods
    # -----------------------------------------------------------------------

    def add_header(self) -> "InvoicePdf":
        issued = self._issued_at.strftime("%Y-%m-%d") if self._issued_at else "-"
        due = self._due_date.strftime("%Y-%m-%d") if self._due_date else "-"
        band = Table(
            [
                [Paragraph(f"INVOICE {self._number}", self._styles["title"])],
                [Paragraph(
                    f"Issued: {issued}  |  Due: {due}  |  Status: {self._status.upper()}",
                    self._styles["subtitle"],
                )],
            ],
            colWidths=[self._doc.width],
        )
        band.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (0, 0), _PRIMARY),
            ("BACKGROUND", (0, 1), (0, 1), _DARK),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ("LEFTPADDING", (0, 0), (-1, -1), 12),
        ]))
        self._story.extend([band, Spacer(1, 6 * mm)])
        return self

    def add_parties(self, provider: dict[str, str], client: dict[str, str]) -> "InvoicePdf":
        """Render provider (left) and client (right) detail blocks."""

        def block(title: str, values: dict[str, str]) -> list[Any]:
            lines = [Paragraph(title, self._styles["heading"])]
            lines += [
                Paragraph(f"<b>{k}:</b> {v or '-'}", self._styles["cell"]) for k, v in values.items()
            ]
            return lines

        half = self._doc.width / 2
        table = Table([[block("From", provider), block("Bill to", client)]], colWidths=[half, half])
        table.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("BACKGROUND", (0, 0), (-1, -1), _LIGHT_GREY),
            ("BOX", (0, 0), (-1, -1), 0.25, _MID_GREY),
            ("INNERGRID", (0, 0), (-1, -1), 0.25, _MID_GREY),
        ]))
        self._story.extend([table, Spacer(1, 6 * mm)])
        return self

    def add_lines(self, lines: Sequence[tuple[str, float]], currency: str) -> "InvoicePdf":
        """Render ``(description, amount)`` rows with alternating shading."""
        self._story.append(Paragraph("Details", self._styles["heading"]))
        self._story.append(HRFlowable(width="100%", thickness=1, color=_PRIMARY))
        self._story.append(Spacer(1, 2 * mm))

        header_style = ParagraphStyle(
            "line_header", parent=self._styles["cell"], fontName="Helvetica-Bold",
            textColor=colors.white,
        )
        data: list[list[Any]] = [[
            Paragraph("Description", header_style),
            Paragraph("Amount", ParagraphStyle(
                "line_header_right", parent=header_style, alignment=TA_RIGHT,
            )),
        ]]
        for description, amount in lines:
            data.append([
                Paragraph(description, self._styles["cell"]),
                Paragraph(_money(amount, currency), self._styles["cell_right"]),
            ])

        width = self._doc.width
        table = Table(data, colWidths=[width * 0.7, width * 0.3], repeatRows=1)
        commands: list[tuple[Any, ...]] = [
            ("BACKGROUND", (0, 0), (-1, 0), _DARK),
            ("GRID", (0, 0), (-1, -1), 0.25, _MID_GREY),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]
        for ri in range(2, len(data), 2):
            commands.append(("BACKGROUND", (0, ri), (-1, ri), _LIGHT_GREY))
        table.setStyle(TableStyle(commands))
        self._story.extend([table, Spacer(1, 4 * mm)])
        return self

    def add_totals(
        self,
        subtotal: float,
        vat_rate: float,
        vat_amount: float,
        total: float,
        currency: str,
    ) -> "InvoicePdf":
        rows = [
            ("Subtotal", _money(subtotal, currency), "cell_right"),
            (f"VAT ({vat_rate * 100:g}%)", _money(vat_amount, currency), "cell_right"),
            ("Total", _money(total, currency), "cell_bold_right"),
        ]
        width = self._doc.width
        table = Table(
            [[Paragraph(label, self._styles[style]), Paragraph(value, self._styles[style])]
             for label, value, style in rows],
            colWidths=[width * 0.7, width * 0.3],
        )
        table.setStyle(TableStyle([
            ("LINEABOVE", (0, 2), (-1, 2), 1, _PRIMARY),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
        ]))
        self._story.append(table)
        return self

    def build(self) -> bytes:
        """Render the document and return the ``.pdf`` bytes."""
        self._doc.build(self._story, onFirstPage=self._on_page, onLaterPages=self._on_page)
        self._buffer.seek(0)
        return self._buffer.read()
