"""Profile model — marketplace user with role-based access control."""

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from marketplace.database import Base, new_id


class Profile(Base):
    """Marketplace account whose role decides what it may see and change.

    Roles:
        - admin: Full access to every booking, service and report.
        - provider: Publishes services and manages milestones/tasks of the
          bookings it delivers.
        - client: Books services, follows progress and approves milestones.

    Attributes:
        id: UUID primary key.
        username: Unique login username.
        email: Unique email address.
        password_hash: Bcrypt-hashed password (never store plain text).
        full_name: Display name.
        role: Role identifier controlling permissions.
        company_name: Optional company the profile belongs to.
        is_active: Whether the account may log in.
        last_login: Timestamp of the last successful login.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(200), unique=True, nullable=False)
    password_hash = Column(String(200), nullable=False)
    full_name = Column(String(300), nullable=True)
    role = Column(String(20), nullable=False, default="client")
    # "admin", "provider", "client"
    company_name = Column(String(200), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    services = relationship("Service", back_populates="provider", lazy="select")
    notifications = relationship(
        "Notification",
        back_populates="profile",
        lazy="select",
        cascade="all, delete-orphan",
    )
