"""MilestoneApproval model — a client's approve/reject decision."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class MilestoneApproval(Base):
    """Audit record of a single approval decision on a milestone."""

    __tablename__ = "milestone_approvals"

    id = Column(String(36), primary_key=True, default=new_id)
    milestone_id = Column(
        String(36), ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    status = Column(String(20), nullable=False)  # "approved", "rejected"
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    milestone = relationship("Milestone", back_populates="approvals", lazy="select")
