"""Pydantic v2 schemas for the ``/api/invoices`` endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class InvoiceGenerateRequest(BaseModel):
    booking_id: str = Field(..., min_length=1)


class InvoiceResponse(BaseModel):
    """Invoice as returned to clients and providers.

    Monetary values are rounded to 3 decimals (baisa precision for OMR).
    """

    id: str
    invoice_number: str
    booking_id: str
    client_id: str
    provider_id: str | None = None
    subtotal: float
    vat_rate: float
    vat_amount: float
    total_amount: float
    currency: str
    status: str
    issued_at: datetime | None = None
    due_date: datetime | None = None
    paid_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
