"""SQLAlchemy models package for the marketplace backend.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from marketplace.models import Booking, Milestone
"""

# Accounts and catalog
from marketplace.models.profile import Profile  # noqa: F401
from marketplace.models.service import Service  # noqa: F401

# Booking → Milestone → Task hierarchy
from marketplace.models.booking import Booking  # noqa: F401
from marketplace.models.milestone import Milestone  # noqa: F401
from marketplace.models.task import Task  # noqa: F401
from marketplace.models.milestone_approval import MilestoneApproval  # noqa: F401
from marketplace.models.milestone_comment import MilestoneComment  # noqa: F401

# Billing
from marketplace.models.invoice import Invoice  # noqa: F401

# Cross-cutting concerns
from marketplace.models.notification import Notification  # noqa: F401
from marketplace.models.audit_log import AuditLog  # noqa: F401

__all__ = [
    "Profile",
    "Service",
    "Booking",
    "Milestone",
    "Task",
    "MilestoneApproval",
    "MilestoneComment",
    "Invoice",
    "Notification",
    "AuditLog",
]
