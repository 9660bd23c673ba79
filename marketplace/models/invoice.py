"""Invoice model — billing document generated from a booking."""

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class Invoice(Base):
    """Invoice issued by the provider for a booking (one per booking).

    Attributes:
        id: UUID primary key.
        invoice_number: Sequential number per month, e.g. "INV-202610-0007".
        booking_id: FK to the invoiced Booking.
        client_id: FK to the billed Profile.
        provider_id: FK to the issuing Profile.
        subtotal: Amount before VAT.
        vat_rate: VAT rate applied (fraction, e.g. 0.05).
        vat_amount: subtotal × vat_rate.
        total_amount: subtotal + vat_amount.
        currency: ISO currency code.
        status: "issued", "paid" or "void".
        issued_at: Issue timestamp.
        due_date: Payment deadline.
        paid_at: Set by the ``payment-succeeded`` webhook.
    """

    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=new_id)
    invoice_number = Column(String(30), unique=True, nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, unique=True)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    provider_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    subtotal = Column(Numeric(12, 3), nullable=False)
    vat_rate = Column(Numeric(5, 4), nullable=False)
    vat_amount = Column(Numeric(12, 3), nullable=False)
    total_amount = Column(Numeric(12, 3), nullable=False)
    currency = Column(String(3), default="OMR", nullable=False)
    status = Column(String(20), default="issued", nullable=False)
    issued_at = Column(DateTime, default=func.now(), nullable=False)
    due_date = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    booking = relationship("Booking", back_populates="invoices", lazy="select")
    client = relationship("Profile", foreign_keys=[client_id], lazy="select")
    provider = relationship("Profile", foreign_keys=[provider_id], lazy="select")
