"""
Invoices router.

Mounts under ``/api/invoices``.

Endpoints
---------
POST /generate   — Issue the invoice for a booking (provider/admin).
GET  /           — Invoices where the caller is client or provider (admin: all).
GET  /{id}       — Invoice detail.
GET  /{id}/pdf   — Invoice as a PDF download.
"""

from __future__ import annotations

import io
from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.schemas.invoice import InvoiceGenerateRequest, InvoiceResponse
from marketplace.services import invoice_service
from marketplace.services.auth_service import get_current_user

router = APIRouter(tags=["Invoices"])


@router.post(
    "/generate",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate an invoice",
    responses={
        403: {"description": "Caller is not the booking provider or an admin."},
        404: {"description": "Booking not found."},
        409: {"description": "Invoice already exists."},
    },
)
def generate_invoice(
    body: InvoiceGenerateRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> InvoiceResponse:
    return invoice_service.generate_invoice(db, body.booking_id, current_user)


@router.get("", response_model=list[InvoiceResponse], summary="List invoices")
def list_invoices(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> list[InvoiceResponse]:
    return invoice_service.list_invoices(db, current_user)


@router.get("/{invoice_id}", response_model=InvoiceResponse, summary="Invoice detail")
def get_invoice(
    invoice_id: Annotated[str, Path(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> InvoiceResponse:
    return InvoiceResponse.model_validate(
        invoice_service.get_invoice_or_404(db, invoice_id, current_user)
    )


@router.get(
    "/{invoice_id}/pdf",
    summary="Download invoice PDF",
    response_class=StreamingResponse,
    responses={200: {"content": {"application/pdf": {}}}},
)
def download_invoice_pdf(
    invoice_id: Annotated[str, Path(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> StreamingResponse:
    invoice = invoice_service.get_invoice_or_404(db, invoice_id, current_user)
    content = invoice_service.render_pdf(invoice)
    return StreamingResponse(
        io.BytesIO(content),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'},
    )
