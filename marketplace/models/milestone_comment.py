"""MilestoneComment model — threaded discussion on a milestone."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class MilestoneComment(Base):
    """Comment left by a booking participant; ``parent_id`` makes it a reply."""

    __tablename__ = "milestone_comments"

    id = Column(String(36), primary_key=True, default=new_id)
    milestone_id = Column(
        String(36), ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    parent_id = Column(String(36), ForeignKey("milestone_comments.id"), nullable=True)
    content = Column(Text, nullable=False)
    comment_type = Column(String(20), default="general", nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    milestone = relationship("Milestone", back_populates="comments", lazy="select")
    author = relationship("Profile", lazy="select")
