"""
Discovery session data model.

Every record is a frozen dataclass; the wizard never mutates a session in
place, it builds a new snapshot with dataclasses.replace(). Collections are
tuples for the same reason.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class CustomerImpact(str, Enum):
    """Coarse severity tier derived from annual cost."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


IMPACT_LABELS = {
    CustomerImpact.LOW: "Minimal",
    CustomerImpact.MEDIUM: "Noticeable",
    CustomerImpact.HIGH: "Significant",
    CustomerImpact.CRITICAL: "Severe",
}


class Difficulty(str, Enum):
    """How hard an automation agent is to build."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class WizardStep(int, Enum):
    """The six ordered wizard stages (0-based)."""
    SNAPSHOT = 0
    PAIN_POINTS = 1
    VALUE_MAPPING = 2
    AUTOMATION = 3
    METRICS = 4
    AGREEMENT = 5

    @property
    def title(self) -> str:
        return STEP_TITLES[self]


STEP_TITLES = {
    WizardStep.SNAPSHOT: "Business Snapshot",
    WizardStep.PAIN_POINTS: "Pain Points",
    WizardStep.VALUE_MAPPING: "Value Mapping",
    WizardStep.AUTOMATION: "Automation Opportunities",
    WizardStep.METRICS: "Metrics & Terms",
    WizardStep.AGREEMENT: "Agreement",
}


@dataclass(frozen=True)
class BusinessSnapshot:
    """Stage 1 profile of the business."""
    business_name: str = ""
    industry: str = ""
    team_size: str = ""
    revenue_range: str = ""
    typical_day: str = ""


@dataclass(frozen=True)
class PainPoint:
    """A recurring manual task, either from the catalog or user-authored."""
    id: str
    label: str
    is_custom: bool = False
    selected: bool = False
    rank: Optional[int] = None  # set iff selected
    hours_per_week: Optional[float] = None
    consequence: str = ""


@dataclass(frozen=True)
class ValueMapItem:
    """Annualized cost of one selected pain point."""
    pain_point_id: str
    label: str
    hours_per_week: float
    hourly_rate: float
    revenue_lost_per_year: int
    customer_impact: CustomerImpact
    annual_cost: int


@dataclass(frozen=True)
class AutomationOpportunity:
    """A proposed AI agent for one of the costliest pain points."""
    id: str
    pain_point_id: str
    title: str
    description: str
    what_agent_does: tuple[str, ...] = ()
    estimated_time_savings_percent: int = 50
    estimated_revenue_impact: int = 0
    difficulty: Difficulty = Difficulty.MODERATE


@dataclass(frozen=True)
class SuccessMetric:
    """A measurable outcome the value share is billed against."""
    id: str
    name: str = ""
    description: str = ""
    data_source: str = ""
    baseline_period: str = "30 days"
    target_improvement: str = ""


@dataclass(frozen=True)
class Agreement:
    """Final-stage terms."""
    metrics: tuple[SuccessMetric, ...] = ()
    value_share_percent: int = 12
    baseline_days: int = 30
    measurement_days: int = 30
    agreed_at: Optional[str] = None
    client_name: str = ""
    client_email: str = ""

    @property
    def first_invoice_day(self) -> int:
        return self.baseline_days + self.measurement_days


@dataclass(frozen=True)
class DiscoverySession:
    """Aggregate root of the wizard and its unit of persistence."""
    id: str
    created_at: str
    current_step: int = 0
    business_snapshot: BusinessSnapshot = field(default_factory=BusinessSnapshot)
    pain_points: tuple[PainPoint, ...] = ()
    value_map: tuple[ValueMapItem, ...] = ()
    automation_opportunities: tuple[AutomationOpportunity, ...] = ()
    agreement: Agreement = field(default_factory=Agreement)

    @property
    def step(self) -> WizardStep:
        return WizardStep(self.current_step)

    @property
    def selected_pain_points(self) -> list[PainPoint]:
        """Selected pain points in rank order."""
        selected = [p for p in self.pain_points if p.selected]
        return sorted(selected, key=lambda p: p.rank if p.rank is not None else len(selected))

    @property
    def is_agreed(self) -> bool:
        return self.agreement.agreed_at is not None

    def find_pain_point(self, pain_point_id: str) -> Optional[PainPoint]:
        for point in self.pain_points:
            if point.id == pain_point_id:
                return point
        return None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        snap = self.business_snapshot
        agreement = self.agreement
        return {
            "id": self.id,
            "created_at": self.created_at,
            "current_step": self.current_step,
            "business_snapshot": {
                "business_name": snap.business_name,
                "industry": snap.industry,
                "team_size": snap.team_size,
                "revenue_range": snap.revenue_range,
                "typical_day": snap.typical_day,
            },
            "pain_points": [
                {
                    "id": p.id,
                    "label": p.label,
                    "is_custom": p.is_custom,
                    "selected": p.selected,
                    "rank": p.rank,
                    "hours_per_week": p.hours_per_week,
                    "consequence": p.consequence,
                }
                for p in self.pain_points
            ],
            "value_map": [
                {
                    "pain_point_id": v.pain_point_id,
                    "label": v.label,
                    "hours_per_week": v.hours_per_week,
                    "hourly_rate": v.hourly_rate,
                    "revenue_lost_per_year": v.revenue_lost_per_year,
                    "customer_impact": v.customer_impact.value,
                    "annual_cost": v.annual_cost,
                }
                for v in self.value_map
            ],
            "automation_opportunities": [
                {
                    "id": o.id,
                    "pain_point_id": o.pain_point_id,
                    "title": o.title,
                    "description": o.description,
                    "what_agent_does": list(o.what_agent_does),
                    "estimated_time_savings_percent": o.estimated_time_savings_percent,
                    "estimated_revenue_impact": o.estimated_revenue_impact,
                    "difficulty": o.difficulty.value,
                }
                for o in self.automation_opportunities
            ],
            "agreement": {
                "metrics": [metric_to_dict(m) for m in agreement.metrics],
                "value_share_percent": agreement.value_share_percent,
                "baseline_days": agreement.baseline_days,
                "measurement_days": agreement.measurement_days,
                "agreed_at": agreement.agreed_at,
                "client_name": agreement.client_name,
                "client_email": agreement.client_email,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DiscoverySession":
        """Create from dictionary."""
        snap = data.get("business_snapshot", {})
        agreement = data.get("agreement", {})

        return cls(
            id=data["id"],
            created_at=data.get("created_at", ""),
            current_step=int(data.get("current_step", 0)),
            business_snapshot=BusinessSnapshot(
                business_name=snap.get("business_name", ""),
                industry=snap.get("industry", ""),
                team_size=snap.get("team_size", ""),
                revenue_range=snap.get("revenue_range", ""),
                typical_day=snap.get("typical_day", ""),
            ),
            pain_points=tuple(
                PainPoint(
                    id=p["id"],
                    label=p["label"],
                    is_custom=p.get("is_custom", False),
                    selected=p.get("selected", False),
                    rank=p.get("rank"),
                    hours_per_week=p.get("hours_per_week"),
                    consequence=p.get("consequence", ""),
                )
                for p in data.get("pain_points", [])
            ),
            value_map=tuple(
                ValueMapItem(
                    pain_point_id=v["pain_point_id"],
                    label=v["label"],
                    hours_per_week=v["hours_per_week"],
                    hourly_rate=v["hourly_rate"],
                    revenue_lost_per_year=v.get("revenue_lost_per_year", 0),
                    customer_impact=CustomerImpact(v.get("customer_impact", "low")),
                    annual_cost=v["annual_cost"],
                )
                for v in data.get("value_map", [])
            ),
            automation_opportunities=tuple(
                AutomationOpportunity(
                    id=o["id"],
                    pain_point_id=o["pain_point_id"],
                    title=o["title"],
                    description=o.get("description", ""),
                    what_agent_does=tuple(o.get("what_agent_does", [])),
                    estimated_time_savings_percent=o.get("estimated_time_savings_percent", 50),
                    estimated_revenue_impact=o.get("estimated_revenue_impact", 0),
                    difficulty=Difficulty(o.get("difficulty", "moderate")),
                )
                for o in data.get("automation_opportunities", [])
            ),
            agreement=Agreement(
                metrics=tuple(metric_from_dict(m) for m in agreement.get("metrics", [])),
                value_share_percent=agreement.get("value_share_percent", 12),
                baseline_days=agreement.get("baseline_days", 30),
                measurement_days=agreement.get("measurement_days", 30),
                agreed_at=agreement.get("agreed_at"),
                client_name=agreement.get("client_name", ""),
                client_email=agreement.get("client_email", ""),
            ),
        )


def metric_to_dict(metric: SuccessMetric) -> dict[str, Any]:
    return {
        "id": metric.id,
        "name": metric.name,
        "description": metric.description,
        "data_source": metric.data_source,
        "baseline_period": metric.baseline_period,
        "target_improvement": metric.target_improvement,
    }


def metric_from_dict(data: dict) -> SuccessMetric:
    return SuccessMetric(
        id=data["id"],
        name=data.get("name", ""),
        description=data.get("description", ""),
        data_source=data.get("data_source", ""),
        baseline_period=data.get("baseline_period", "30 days"),
        target_improvement=data.get("target_improvement", ""),
    )
