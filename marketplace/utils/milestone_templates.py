"""
Milestone plans used by ``POST /api/milestones/seed``.

Each plan is an ordered list of ``MilestoneTemplate``. ``due_in_days`` is
relative to the seeding date. Task hours are derived from the milestone
estimate when ``split_hours`` is set.
"""

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class MilestoneTemplate:
    title: str
    due_in_days: int
    estimated_hours: float
    tasks: tuple[str, ...]
    priority: str = "normal"
    weight: float = 1.0
    split_hours: bool = True

    def task_hours(self) -> int:
        if not self.split_hours or not self.tasks:
            return 0
        return max(1, int(self.estimated_hours // len(self.tasks)))


def _weekly(rows: list[tuple[str, float, float, tuple[str, ...]]]) -> tuple[MilestoneTemplate, ...]:
    # (title, weight, estimated_hours, tasks); one milestone due per week
    return tuple(
        MilestoneTemplate(
            title=title,
            due_in_days=7 * (index + 1),
            estimated_hours=hours,
            weight=weight,
            tasks=tasks,
        )
        for index, (title, weight, hours, tasks) in enumerate(rows)
    )


DEFAULT_PLAN: Final[str] = "content_creation"

PLANS: Final[dict[str, tuple[MilestoneTemplate, ...]]] = {
    "content_creation": (
        MilestoneTemplate(
            "Research & Strategy", 5, 8,
            ("Collect client requirements", "Research audience & competitors",
             "Draft content strategy outline"),
            priority="normal", split_hours=False,
        ),
        MilestoneTemplate(
            "Content Drafting", 15, 15,
            ("Blog drafts", "Website copywriting", "Social media posts"),
            priority="high", split_hours=False,
        ),
        MilestoneTemplate(
            "Review & Feedback", 19, 6,
            ("Submit drafts to client", "Collect feedback", "Apply revisions"),
            priority="normal", split_hours=False,
        ),
        MilestoneTemplate(
            "Final Delivery", 22, 4,
            ("Deliver final approved content package", "Handover documents/files",
             "Mark project as complete"),
            priority="low", split_hours=False,
        ),
    ),
    "seo": _weekly([
        ("Initial Analysis & Research", 1.0, 8,
         ("Conduct website audit", "Analyze current SEO performance", "Identify technical issues")),
        ("On-Page Optimization", 1.5, 12,
         ("Keyword research", "Competitor analysis", "Meta tag optimization", "Content optimization")),
        ("Technical SEO Implementation", 1.2, 10,
         ("Fix crawl errors", "Improve site speed", "Mobile optimization", "Schema markup")),
        ("Content Strategy & Creation", 1.3, 15,
         ("Content calendar creation", "Blog post writing", "Page content updates")),
        ("Link Building & Outreach", 1.0, 8,
         ("Link prospecting", "Outreach campaigns", "Guest posting")),
        ("Monitoring & Reporting", 0.8, 6,
         ("Performance tracking", "Monthly reports", "Client communication")),
    ]),
    "digital_marketing": _weekly([
        ("Strategy Development", 1.0, 10,
         ("Market research", "Target audience analysis", "Competitor analysis")),
        ("Campaign Setup", 1.2, 12,
         ("Ad account setup", "Campaign configuration", "Budget allocation")),
        ("Content Creation", 1.5, 20,
         ("Video production", "Graphic design", "Copywriting", "Content scheduling")),
        ("Social Media Management", 1.0, 8,
         ("Platform management", "Community engagement", "Influencer outreach")),
        ("Performance Optimization", 1.0, 8,
         ("A/B testing", "Performance analysis", "Budget optimization")),
        ("Analytics & Reporting", 0.8, 6,
         ("ROI analysis", "Client reporting", "Recommendations")),
    ]),
    "translation": _weekly([
        ("Document Analysis", 1.0, 4,
         ("Document review", "Terminology research", "Style guide creation")),
        ("Translation Phase 1", 1.5, 12,
         ("Core content translation", "Technical translation", "Cultural adaptation")),
        ("Quality Review", 1.0, 6,
         ("Quality check", "Consistency review", "Accuracy verification")),
        ("Translation Phase 2", 1.2, 8,
         ("Remaining content translation", "Formatting", "Layout adjustment")),
        ("Final Proofreading", 0.8, 4,
         ("Final proofreading", "Grammar check", "Style consistency")),
        ("Delivery & Feedback", 0.5, 2,
         ("Document formatting", "Client delivery", "Feedback collection")),
    ]),
    "pro_services": _weekly([
        ("Requirements Gathering", 1.0, 6,
         ("Client interviews", "Requirements documentation", "Scope definition")),
        ("Project Planning", 0.8, 4,
         ("Project timeline creation", "Resource allocation", "Risk assessment")),
        ("Development Phase 1", 1.5, 20,
         ("Core functionality development", "Database design", "API integration")),
        ("Testing & Quality Assurance", 1.0, 8,
         ("Unit testing", "Integration testing", "Bug fixing")),
        ("Development Phase 2", 1.2, 12,
         ("Feature enhancements", "Performance optimization", "Security implementation")),
        ("Deployment & Handover", 0.8, 6,
         ("Documentation creation", "User training", "Deployment")),
    ]),
}


def resolve_plan(plan: str | None) -> tuple[str, tuple[MilestoneTemplate, ...]]:
    """Return ``(plan_key, templates)``; unknown keys fall back to the default plan."""
    if plan and plan in PLANS:
        return plan, PLANS[plan]
    return DEFAULT_PLAN, PLANS[DEFAULT_PLAN]
