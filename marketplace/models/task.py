"""Task model — leaf unit of work under a milestone."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class Task(Base):
    """Leaf work item; its ``status`` drives the parent milestone's progress.

    Attributes:
        id: UUID primary key.
        milestone_id: FK to the owning Milestone.
        title: Task name.
        description: Optional details.
        status: "pending", "in_progress", "completed", "cancelled" or "on_hold".
        priority: "low", "normal", "high" or "urgent".
        progress_percentage: 0–100; forced to 100 on completion.
        due_date: Planned completion.
        estimated_hours: Planned effort.
        actual_hours: Logged effort.
        order_index: Position within the milestone.
        editable: Whether the provider may still change the task.
        created_by: FK to the Profile that created the task.
    """

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    milestone_id = Column(
        String(36), ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    priority = Column(String(10), default="normal", nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)
    due_date = Column(DateTime, nullable=True)
    estimated_hours = Column(Numeric(8, 2), default=0, nullable=False)
    actual_hours = Column(Numeric(8, 2), default=0, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    editable = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    milestone = relationship("Milestone", back_populates="tasks", lazy="select")
