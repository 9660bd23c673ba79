"""Milestone model — a weighted phase of a booking."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class Milestone(Base):
    """A named phase of a booking with a provider-assigned weight.

    ``progress_percentage`` is derived from the child tasks (completed /
    total); ``weight`` controls how much the milestone moves the booking's
    ``project_progress``.

    Attributes:
        id: UUID primary key.
        booking_id: FK to the owning Booking.
        title: Phase name.
        description: Optional details.
        status: "pending", "in_progress", "completed", "cancelled", "on_hold"
                or "rejected".
        priority: "low", "normal", "high" or "urgent".
        progress_percentage: Derived 0–100.
        weight: Influence on the booking rollup (default 1).
        order_index: Position in the booking timeline (0-based).
        editable: Whether the provider may still change the milestone.
        start_date: When work on the phase began.
        due_date: Planned completion.
        estimated_hours: Planned effort.
        actual_hours: Logged effort.
        completed_at: Set when the client approves the milestone.
    """

    __tablename__ = "milestones"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    priority = Column(String(10), default="normal", nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)
    weight = Column(Numeric(5, 2), default=1, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    editable = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    estimated_hours = Column(Numeric(8, 2), default=0, nullable=False)
    actual_hours = Column(Numeric(8, 2), default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="milestones", lazy="select")
    tasks = relationship(
        "Task",
        back_populates="milestone",
        order_by="Task.order_index",
        lazy="select",
        cascade="all, delete-orphan",
    )
    approvals = relationship(
        "MilestoneApproval",
        back_populates="milestone",
        lazy="select",
        cascade="all, delete-orphan",
    )
    comments = relationship(
        "MilestoneComment",
        back_populates="milestone",
        order_by="MilestoneComment.created_at",
        lazy="select",
        cascade="all, delete-orphan",
    )
