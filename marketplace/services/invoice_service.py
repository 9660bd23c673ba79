"""
Invoice generation and retrieval.

One invoice per booking. Amounts are computed with ``Decimal`` and rounded
half-up to 3 decimals; VAT uses ``Settings.VAT_RATE`` and the due date is
``INVOICE_DUE_DAYS`` after issue.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.config import get_settings
from marketplace.exporters.pdf_exporter import InvoicePdf
from marketplace.models.invoice import Invoice
from marketplace.models.profile import Profile
from marketplace.schemas.invoice import InvoiceResponse
from marketplace.services.auth_service import ensure_booking_editor, ensure_booking_reader
from marketplace.services.milestone_service import get_booking_or_404

logger = logging.getLogger(__name__)

_MILLS = Decimal("0.001")
_NUMBER_ATTEMPTS = 3


def _q(value: Decimal) -> Decimal:
    return value.quantize(_MILLS, rounding=ROUND_HALF_UP)


def compute_amounts(subtotal: Decimal | float, vat_rate: float) -> tuple[Decimal, Decimal, Decimal]:
    """Return ``(subtotal, vat_amount, total)`` rounded to 3 decimals."""
    sub = _q(Decimal(str(subtotal)))
    vat = _q(sub * Decimal(str(vat_rate)))
    return sub, vat, sub + vat


def next_invoice_number(db: Session, now: datetime) -> str:
    """``INV-YYYYMM-NNNN``: one past the highest number issued this month."""
    prefix = f"INV-{now:%Y%m}-"
    last = (
        db.query(func.max(Invoice.invoice_number))
        .filter(Invoice.invoice_number.like(f"{prefix}%"))
        .scalar()
    )
    sequence = int(last[len(prefix):]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def generate_invoice(db: Session, booking_id: str, user: Profile) -> InvoiceResponse:
    """Issue the invoice for a booking.

    A concurrent request may take the same invoice number between the lookup
    and the insert; the unique constraint rejects the loser, which rereads the
    sequence and tries again up to ``_NUMBER_ATTEMPTS`` times.

    Raises:
        HTTPException 400: The booking has no cost.
        HTTPException 403: Caller is not the booking's provider or an admin.
        HTTPException 404: Booking not found.
        HTTPException 409: An invoice already exists for the booking.
        HTTPException 503: No free invoice number after every attempt.
    """
    booking = get_booking_or_404(db, booking_id)
    ensure_booking_editor(booking, user)
    if booking.total_cost is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking has no total cost to invoice",
        )

    settings = get_settings()
    subtotal, vat, total = compute_amounts(booking.total_cost, settings.VAT_RATE)
    for attempt in range(1, _NUMBER_ATTEMPTS + 1):
        if db.query(Invoice).filter(Invoice.booking_id == booking.id).first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An invoice already exists for this booking",
            )
        now = datetime.utcnow()
        invoice = Invoice(
            invoice_number=next_invoice_number(db, now),
            booking_id=booking.id,
            client_id=booking.client_id,
            provider_id=booking.provider_id,
            subtotal=subtotal,
            vat_rate=Decimal(str(settings.VAT_RATE)),
            vat_amount=vat,
            total_amount=total,
            currency=booking.currency or settings.DEFAULT_CURRENCY,
            status="issued",
            issued_at=now,
            due_date=now + timedelta(days=settings.INVOICE_DUE_DAYS),
        )
        db.add(invoice)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                "Invoice number %s already taken (attempt %d/%d)",
                invoice.invoice_number, attempt, _NUMBER_ATTEMPTS,
            )
            continue
        db.refresh(invoice)
        logger.info(
            "Invoice %s issued for booking %s total=%s", invoice.invoice_number, booking.id, total
        )
        return InvoiceResponse.model_validate(invoice)

    logger.error("No free invoice number for booking %s", booking.id)
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Could not allocate an invoice number, please retry",
    )


def list_invoices(db: Session, user: Profile) -> list[InvoiceResponse]:
    query = db.query(Invoice)
    if user.role != "admin":
        query = query.filter(or_(Invoice.client_id == user.id, Invoice.provider_id == user.id))
    rows = query.order_by(Invoice.issued_at.desc()).all()
    return [InvoiceResponse.model_validate(i) for i in rows]


def get_invoice_or_404(db: Session, invoice_id: str, user: Profile) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice '{invoice_id}' not found",
        )
    ensure_booking_reader(invoice.booking, user)
    return invoice


def render_pdf(invoice: Invoice) -> bytes:
    booking = invoice.booking
    provider = invoice.provider
    client = invoice.client
    pdf = InvoicePdf(
        invoice_number=invoice.invoice_number,
        issued_at=invoice.issued_at,
        due_date=invoice.due_date,
        status=invoice.status,
    )
    pdf.add_header()
    pdf.add_parties(
        provider={
            "Name": provider.full_name if provider else "",
            "Company": provider.company_name if provider else "",
            "Email": provider.email if provider else "",
        },
        client={
            "Name": client.full_name if client else "",
            "Company": client.company_name if client else "",
            "Email": client.email if client else "",
        },
    )
    description = booking.title or f"Booking {booking.booking_number or booking.id}"
    pdf.add_lines([(description, float(invoice.subtotal))], currency=invoice.currency)
    pdf.add_totals(
        subtotal=float(invoice.subtotal),
        vat_rate=float(invoice.vat_rate),
        vat_amount=float(invoice.vat_amount),
        total=float(invoice.total_amount),
        currency=invoice.currency,
    )
    return pdf.build()
