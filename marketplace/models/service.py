"""Service model — a catalog offering published by a provider."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class Service(Base):
    """A bookable service listed in the marketplace catalog.

    New services start ``active`` with ``approval_status == "pending"``; an
    admin (or the ``new-service-created`` webhook) moves them through review.

    Attributes:
        id: UUID primary key.
        provider_id: FK to the publishing Profile.
        title: Short public title.
        description: Public description.
        category: Free-text grouping category.
        status: "active", "inactive" or "draft".
        approval_status: "pending", "approved" or "rejected".
        base_price: Price before VAT.
        currency: "OMR", "USD" or "EUR".
        estimated_duration: Human-readable duration, e.g. "2 weeks".
        location: Optional delivery location.
        tags: List of search tags.
        requirements: What the client must provide.
        featured: Whether the service is promoted in listings.
    """

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=new_id)
    provider_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False)
    status = Column(String(20), default="active", nullable=False)
    approval_status = Column(String(20), default="pending", nullable=False)
    base_price = Column(Numeric(12, 3), nullable=False)
    currency = Column(String(3), default="OMR", nullable=False)
    estimated_duration = Column(String(100), nullable=True)
    location = Column(String(200), nullable=True)
    tags = Column(JSON, nullable=True)
    requirements = Column(Text, nullable=True)
    featured = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    provider = relationship("Profile", back_populates="services", lazy="select")
    bookings = relationship("Booking", back_populates="service", lazy="select")
