"""
Application-wide constants for the marketplace backend.

Defines domain enumerations, status transition tables, insight thresholds
and lookup lists used across routers, services, and models.
"""

from typing import Final

# ---------------------------------------------------------------------------
# User roles
# ---------------------------------------------------------------------------

ROLES: Final[list[str]] = [
    "admin",
    "provider",
    "client",
]

# ---------------------------------------------------------------------------
# Booking states
# ---------------------------------------------------------------------------

BOOKING_STATUSES: Final[list[str]] = [
    "draft",
    "pending",
    "confirmed",
    "in_progress",
    "paid",
    "completed",
    "cancelled",
]

# ---------------------------------------------------------------------------
# Milestone and task states
# ---------------------------------------------------------------------------

MILESTONE_STATUSES: Final[list[str]] = [
    "pending",
    "in_progress",
    "completed",
    "cancelled",
    "on_hold",
    "rejected",
]

TASK_STATUSES: Final[list[str]] = [
    "pending",
    "in_progress",
    "completed",
    "cancelled",
    "on_hold",
]

# Allowed task status moves; completed and cancelled are terminal
TASK_TRANSITIONS: Final[dict[str, list[str]]] = {
    "pending": ["in_progress", "cancelled"],
    "in_progress": ["on_hold", "completed", "cancelled"],
    "on_hold": ["in_progress", "cancelled"],
    "completed": [],
    "cancelled": [],
}

PRIORITIES: Final[list[str]] = [
    "low",
    "normal",
    "high",
    "urgent",
]

COMMENT_TYPES: Final[list[str]] = [
    "general",
    "feedback",
    "question",
    "issue",
]

# ---------------------------------------------------------------------------
# Service catalog
# ---------------------------------------------------------------------------

SERVICE_STATUSES: Final[list[str]] = ["active", "inactive", "draft"]
APPROVAL_STATUSES: Final[list[str]] = ["pending", "approved", "rejected"]
CURRENCIES: Final[list[str]] = ["OMR", "USD", "EUR"]

# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------

INVOICE_STATUSES: Final[list[str]] = ["issued", "paid", "void"]

# ---------------------------------------------------------------------------
# Webhook events (dispatched by ``webhook_service.dispatch``)
# ---------------------------------------------------------------------------

WEBHOOK_EVENTS: Final[list[str]] = [
    "tracking-updated",
    "booking-created",
    "new-service-created",
    "payment-succeeded",
    "weekly-report",
]

# ---------------------------------------------------------------------------
# Health score rules (insights engine)
# ---------------------------------------------------------------------------

HEALTH_BASE: Final[int] = 100
HEALTH_PENALTY_OVERDUE_MILESTONE: Final[int] = 15
HEALTH_PENALTY_OVERDUE_TASK: Final[int] = 5
HEALTH_PENALTY_LOW_MILESTONE_RATE: Final[int] = 20   # milestone completion < 50 %
HEALTH_PENALTY_LOW_TASK_RATE: Final[int] = 15        # task completion < 30 %
HEALTH_BONUS_HIGH_MILESTONE_RATE: Final[int] = 10    # milestone completion > 80 %
HEALTH_BONUS_HIGH_TASK_RATE: Final[int] = 10         # task completion > 70 %

LOW_HEALTH_THRESHOLD: Final[int] = 60
MAX_PARALLEL_MILESTONES: Final[int] = 3

# ---------------------------------------------------------------------------
# Risk level thresholds (predictions; completion expressed as a 0–1 fraction)
# ---------------------------------------------------------------------------

RISK_HIGH_OVERDUE_COUNT: Final[int] = 2
RISK_HIGH_COMPLETION_RATE: Final[float] = 0.30
RISK_MEDIUM_COMPLETION_RATE: Final[float] = 0.60
DEFAULT_DAYS_TO_COMPLETE: Final[int] = 30

# ---------------------------------------------------------------------------
# Realtime events
# ---------------------------------------------------------------------------

REALTIME_EVENTS: Final[list[str]] = ["INSERT", "UPDATE", "DELETE", "*"]
PROGRESS_UPDATED_EVENT: Final[str] = "progress_updated"
