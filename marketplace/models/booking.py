"""Booking model — a client/provider engagement whose progress is derived."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class Booking(Base):
    """Top-level unit of work between a client and a provider.

    ``project_progress`` is never set by a user: it is the weight-normalised
    average of the milestones' ``progress_percentage`` and is rewritten by
    ``progress_service.calculate_booking_progress`` after every milestone or
    task mutation.

    Attributes:
        id: UUID primary key.
        booking_number: Human-readable number, e.g. "BK-20261018-004211".
        title: Display title.
        client_id: FK to the booking client's Profile.
        provider_id: FK to the delivering provider's Profile.
        service_id: FK to the booked Service.
        status: Lifecycle state (see ``constants.BOOKING_STATUSES``).
        project_progress: Derived overall progress 0–100.
        service_type: Milestone plan key used when seeding, e.g. "content_creation".
        start_time: Planned start.
        end_time: Planned end.
        total_cost: Agreed amount before VAT.
        currency: ISO currency code.
    """

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_number = Column(String(30), unique=True, nullable=True)
    title = Column(String(300), nullable=True)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    provider_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    project_progress = Column(Integer, default=0, nullable=False)
    service_type = Column(String(50), nullable=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    total_cost = Column(Numeric(12, 3), nullable=True)
    currency = Column(String(3), default="OMR", nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    client = relationship("Profile", foreign_keys=[client_id], lazy="select")
    provider = relationship("Profile", foreign_keys=[provider_id], lazy="select")
    service = relationship("Service", back_populates="bookings", lazy="select")
    milestones = relationship(
        "Milestone",
        back_populates="booking",
        order_by="Milestone.order_index",
        lazy="select",
        cascade="all, delete-orphan",
    )
    invoices = relationship("Invoice", back_populates="booking", lazy="select")
