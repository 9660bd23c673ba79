"""AuditLog model — append-only trail of webhook-driven changes."""

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class AuditLog(Base):
    """One row per externally triggered change.

    Attributes:
        id: UUID primary key.
        action: Short verb, e.g. "payment_succeeded".
        table_name: Affected table.
        record_id: Affected row id (or a report label).
        new_values: JSON snapshot of the written values.
        created_at: When the change was recorded.
    """

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    action = Column(String(100), nullable=False)
    table_name = Column(String(100), nullable=False)
    record_id = Column(String(100), nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
