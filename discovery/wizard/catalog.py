"""
Catalog data for the discovery wizard.

Pain-point categories, option lists, rate tables and the canned agent and
metric templates. A WizardCatalog is handed to the wizard at construction;
DEFAULT_CATALOG is what the web app and tests use.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import Difficulty


@dataclass(frozen=True)
class PainPointTemplate:
    """Catalog entry for one of the canonical pain-point categories."""
    id: str
    label: str


@dataclass(frozen=True)
class AgentTemplate:
    """Canned description of an automation agent."""
    title: str
    description: str
    what_agent_does: tuple[str, ...]
    difficulty: Difficulty = Difficulty.MODERATE


@dataclass(frozen=True)
class MetricTemplate:
    """Canned success metric."""
    name: str
    description: str
    data_source: str
    target_improvement: str
    baseline_period: str = "30 days"


DEFAULT_PAIN_POINTS = (
    PainPointTemplate("lead-response", "Lead / inquiry response"),
    PainPointTemplate("scheduling", "Scheduling & coordination"),
    PainPointTemplate("data-entry", "Data entry & CRM updates"),
    PainPointTemplate("client-comms", "Client / tenant communication"),
    PainPointTemplate("invoicing", "Invoicing & follow-ups"),
    PainPointTemplate("reporting", "Reporting & compliance"),
)

INDUSTRY_OPTIONS = (
    "Property Management",
    "Construction / Trades",
    "Real Estate",
    "Professional Services",
    "Retail / E-commerce",
    "Healthcare",
    "Agriculture / Farming",
    "Nonprofit",
    "Other",
)

TEAM_SIZE_OPTIONS = (
    "Just me",
    "2-5 people",
    "6-15 people",
    "16-50 people",
    "50+ people",
)

REVENUE_RANGE_OPTIONS = (
    "Prefer not to say",
    "Under $100K",
    "$100K - $500K",
    "$500K - $1M",
    "$1M - $5M",
    "$5M+",
)

# Base hourly value of owner/staff time by revenue bucket
REVENUE_HOURLY_RATES = {
    "Under $100K": 25,
    "$100K - $500K": 35,
    "$500K - $1M": 50,
    "$1M - $5M": 65,
    "$5M+": 85,
}

# Larger teams spread work across cheaper roles
TEAM_SIZE_MULTIPLIERS = {
    "Just me": 1.2,
    "2-5 people": 1.0,
    "6-15 people": 0.9,
    "16-50 people": 0.85,
    "50+ people": 0.8,
}

AUTOMATION_TEMPLATES = {
    "lead-response": AgentTemplate(
        title="AI Lead Response Agent",
        description=(
            "An AI agent that monitors incoming inquiries and responds instantly with "
            "personalized messages, qualification questions, and scheduling links."
        ),
        what_agent_does=(
            "Monitors email, web forms, and texts for new inquiries",
            "Sends a personalized response within 60 seconds",
            "Asks qualifying questions and captures key info",
            "Books meetings directly on your calendar",
            "Hands off hot leads with context for your follow-up",
        ),
        difficulty=Difficulty.SIMPLE,
    ),
    "scheduling": AgentTemplate(
        title="Smart Scheduling Coordinator",
        description=(
            "An AI agent that handles the back-and-forth of scheduling, coordinates "
            "availability across your team, and sends reminders."
        ),
        what_agent_does=(
            "Manages your team's availability in real-time",
            "Handles rescheduling requests automatically",
            "Sends confirmation and reminder sequences",
            "Coordinates multi-party meetings",
            "Syncs with your existing calendar tools",
        ),
        difficulty=Difficulty.SIMPLE,
    ),
    "data-entry": AgentTemplate(
        title="Automated Data Capture Agent",
        description=(
            "An AI agent that extracts information from emails, forms, and documents, "
            "then updates your CRM and systems automatically."
        ),
        what_agent_does=(
            "Reads incoming emails and documents for key data",
            "Updates CRM records automatically",
            "Creates tasks and follow-ups from conversation context",
            "Flags inconsistencies or missing information",
            "Generates weekly data quality reports",
        ),
        difficulty=Difficulty.MODERATE,
    ),
    "client-comms": AgentTemplate(
        title="Client Communication Agent",
        description=(
            "An AI agent that handles routine client communications: status updates, "
            "responses to common questions, and proactive outreach."
        ),
        what_agent_does=(
            "Responds to routine questions with accurate, personalized answers",
            "Sends proactive status updates and check-ins",
            "Escalates complex issues to you with full context",
            "Maintains communication logs and history",
            "Generates monthly client communication summaries",
        ),
        difficulty=Difficulty.MODERATE,
    ),
    "invoicing": AgentTemplate(
        title="Invoice & Follow-Up Agent",
        description=(
            "An AI agent that generates invoices, sends reminders, tracks payments, "
            "and follows up on overdue accounts."
        ),
        what_agent_does=(
            "Generates invoices from completed work records",
            "Sends payment reminders on a smart schedule",
            "Follows up on overdue invoices with escalating urgency",
            "Reconciles payments with records",
            "Sends you a weekly AR summary",
        ),
        difficulty=Difficulty.SIMPLE,
    ),
    "reporting": AgentTemplate(
        title="Automated Reporting Agent",
        description=(
            "An AI agent that pulls data from your systems, generates reports, and "
            "flags important trends and anomalies."
        ),
        what_agent_does=(
            "Aggregates data from multiple sources automatically",
            "Generates weekly and monthly reports",
            "Highlights trends, anomalies, and action items",
            "Distributes reports to the right stakeholders",
            "Creates compliance-ready documentation",
        ),
        difficulty=Difficulty.MODERATE,
    ),
}

METRIC_TEMPLATES = {
    "lead-response": (
        MetricTemplate(
            name="Lead Response Time",
            description="Average time from inquiry received to first response",
            data_source="Email/CRM timestamps",
            target_improvement="< 5 minutes (from current average)",
        ),
        MetricTemplate(
            name="Lead Conversion Rate",
            description="Percentage of inquiries that become customers",
            data_source="CRM pipeline data",
            target_improvement="20%+ improvement over baseline",
        ),
    ),
    "scheduling": (
        MetricTemplate(
            name="Scheduling Time Saved",
            description="Hours per week spent on scheduling coordination",
            data_source="Time tracking / self-report",
            target_improvement="60%+ reduction",
        ),
    ),
    "client-comms": (
        MetricTemplate(
            name="Client Response Time",
            description="Average time to respond to client inquiries",
            data_source="Communication platform logs",
            target_improvement="< 15 minutes for routine questions",
        ),
    ),
}


def generic_agent_template(label: str) -> AgentTemplate:
    """Fallback agent for custom or unknown pain points."""
    task = label.lower()
    return AgentTemplate(
        title=f"{label} Automation Agent",
        description=(
            f"An AI agent that automates the manual work involved in {task}, "
            "saving your team significant time each week."
        ),
        what_agent_does=(
            f"Handles routine {task} tasks automatically",
            "Responds to incoming requests within minutes",
            "Escalates complex situations to your team with context",
            "Tracks all activity and generates weekly summaries",
            "Learns and improves from your feedback over time",
        ),
        difficulty=Difficulty.MODERATE,
    )


def generic_metric_template(title: str, savings_percent: int) -> MetricTemplate:
    """Fallback metric: hours saved by an opportunity."""
    return MetricTemplate(
        name=f"{title} - Hours Saved",
        description=f"Weekly hours spent on {title.lower()} tasks",
        data_source="Time tracking / self-report",
        target_improvement=f"{savings_percent}%+ reduction",
    )


@dataclass(frozen=True)
class WizardCatalog:
    """Configuration data consumed by the wizard calculators."""
    pain_points: tuple[PainPointTemplate, ...] = DEFAULT_PAIN_POINTS
    industries: tuple[str, ...] = INDUSTRY_OPTIONS
    team_sizes: tuple[str, ...] = TEAM_SIZE_OPTIONS
    revenue_ranges: tuple[str, ...] = REVENUE_RANGE_OPTIONS
    revenue_rates: dict[str, float] = field(default_factory=lambda: dict(REVENUE_HOURLY_RATES))
    team_size_multipliers: dict[str, float] = field(default_factory=lambda: dict(TEAM_SIZE_MULTIPLIERS))
    default_hourly_rate: float = 40
    default_size_multiplier: float = 1.0
    agent_templates: dict[str, AgentTemplate] = field(default_factory=lambda: dict(AUTOMATION_TEMPLATES))
    metric_templates: dict[str, tuple[MetricTemplate, ...]] = field(
        default_factory=lambda: dict(METRIC_TEMPLATES)
    )

    def agent_template_for(self, pain_point_id: str, label: str) -> AgentTemplate:
        return self.agent_templates.get(pain_point_id) or generic_agent_template(label)


DEFAULT_CATALOG = WizardCatalog()
