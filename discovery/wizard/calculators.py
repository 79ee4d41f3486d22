"""
Pure calculations behind the wizard's derived stages.

Cost model (per selected pain point):
    labor        = hours_per_week * 52 * hourly_rate
    revenue_lost = labor * 0.30 if hours > 10, * 0.15 if hours > 5, else 0
    annual_cost  = labor + revenue_lost

Impact tiers are strict upper bounds: 20,000 is still "low", 20,001 is
"medium", and so on at 50,000 and 100,000.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from .catalog import DEFAULT_CATALOG, WizardCatalog, generic_metric_template
from .models import (
    AutomationOpportunity,
    CustomerImpact,
    PainPoint,
    SuccessMetric,
    ValueMapItem,
)

WEEKS_PER_YEAR = 52
MAX_OPPORTUNITIES = 3

# (threshold, tier): first threshold strictly exceeded wins
IMPACT_THRESHOLDS = (
    (100_000, CustomerImpact.CRITICAL),
    (50_000, CustomerImpact.HIGH),
    (20_000, CustomerImpact.MEDIUM),
)


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def estimate_hourly_rate(
    revenue_range: str,
    team_size: str,
    catalog: WizardCatalog = DEFAULT_CATALOG,
) -> int:
    """Look up the hourly value of time for a revenue bucket and team size."""
    base = catalog.revenue_rates.get(revenue_range, catalog.default_hourly_rate)
    multiplier = catalog.team_size_multipliers.get(team_size, catalog.default_size_multiplier)
    return round_half_up(base * multiplier)


def revenue_lost_rate(hours_per_week: float) -> float:
    """Missed-opportunity surcharge on labor cost."""
    if hours_per_week > 10:
        return 0.3
    if hours_per_week > 5:
        return 0.15
    return 0.0


@dataclass(frozen=True)
class CostEstimate:
    labor_cost: float
    revenue_lost: float

    @property
    def annual_cost(self) -> float:
        return self.labor_cost + self.revenue_lost


def estimate_annual_cost(hours_per_week: float, hourly_rate: float) -> CostEstimate:
    labor = hours_per_week * WEEKS_PER_YEAR * hourly_rate
    return CostEstimate(labor_cost=labor, revenue_lost=labor * revenue_lost_rate(hours_per_week))


def classify_impact(annual_cost: float) -> CustomerImpact:
    for threshold, tier in IMPACT_THRESHOLDS:
        if annual_cost > threshold:
            return tier
    return CustomerImpact.LOW


def value_map_item(
    pain_point: PainPoint,
    hourly_rate: float,
    impact: Optional[CustomerImpact] = None,
) -> ValueMapItem:
    """
    Build the value-map record for one pain point.

    Args:
        pain_point: A selected pain point with positive hours
        hourly_rate: Rate assumption in dollars
        impact: Keep this impact tier instead of classifying from cost
    """
    hours = pain_point.hours_per_week or 0
    cost = estimate_annual_cost(hours, hourly_rate)
    return ValueMapItem(
        pain_point_id=pain_point.id,
        label=pain_point.label,
        hours_per_week=hours,
        hourly_rate=hourly_rate,
        revenue_lost_per_year=round_half_up(cost.revenue_lost),
        customer_impact=impact or classify_impact(cost.annual_cost),
        annual_cost=round_half_up(cost.annual_cost),
    )


def is_costed(pain_point: PainPoint) -> bool:
    """Whether a pain point belongs in the value map."""
    return pain_point.selected and (pain_point.hours_per_week or 0) > 0


def build_value_map(pain_points: Iterable[PainPoint], hourly_rate: float) -> tuple[ValueMapItem, ...]:
    """Value map for every selected, hours-positive pain point, biggest first."""
    costed = sorted(
        (p for p in pain_points if is_costed(p)),
        key=lambda p: p.hours_per_week or 0,
        reverse=True,
    )
    return tuple(value_map_item(p, hourly_rate) for p in costed)


def reconcile_value_map(
    pain_points: Iterable[PainPoint],
    existing: Iterable[ValueMapItem],
    hourly_rate: float,
) -> tuple[ValueMapItem, ...]:
    """
    Bring the value map back in line with the pain points.

    Items whose pain point is still costed at the same hours keep their
    manual rate and impact overrides. Items whose hours changed are re-costed
    at their own rate. New pain points use `hourly_rate`. Items whose source
    was unselected, zeroed or removed are dropped.
    """
    previous = {item.pain_point_id: item for item in existing}
    costed = sorted(
        (p for p in pain_points if is_costed(p)),
        key=lambda p: p.hours_per_week or 0,
        reverse=True,
    )

    items = []
    for point in costed:
        old = previous.get(point.id)
        if old is None:
            items.append(value_map_item(point, hourly_rate))
        elif old.hours_per_week == point.hours_per_week:
            items.append(replace(old, label=point.label))
        else:
            items.append(value_map_item(point, old.hourly_rate))
    return tuple(items)


def recompute_with_rate(item: ValueMapItem, hourly_rate: float) -> ValueMapItem:
    """Re-cost a value-map item after a manual rate override."""
    cost = estimate_annual_cost(item.hours_per_week, hourly_rate)
    return ValueMapItem(
        pain_point_id=item.pain_point_id,
        label=item.label,
        hours_per_week=item.hours_per_week,
        hourly_rate=hourly_rate,
        revenue_lost_per_year=round_half_up(cost.revenue_lost),
        customer_impact=item.customer_impact,
        annual_cost=round_half_up(cost.annual_cost),
    )


def savings_percent(hours_per_week: float) -> int:
    if hours_per_week > 10:
        return 70
    if hours_per_week > 5:
        return 60
    return 50


def generate_opportunities(
    value_map: Iterable[ValueMapItem],
    catalog: WizardCatalog = DEFAULT_CATALOG,
) -> tuple[AutomationOpportunity, ...]:
    """Top three value-map items by annual cost, each matched to an agent template."""
    ranked = sorted(value_map, key=lambda v: v.annual_cost, reverse=True)[:MAX_OPPORTUNITIES]

    opportunities = []
    for item in ranked:
        template = catalog.agent_template_for(item.pain_point_id, item.label)
        percent = savings_percent(item.hours_per_week)
        opportunities.append(AutomationOpportunity(
            id=str(uuid.uuid4()),
            pain_point_id=item.pain_point_id,
            title=template.title,
            description=template.description,
            what_agent_does=template.what_agent_does,
            estimated_time_savings_percent=percent,
            estimated_revenue_impact=round_half_up(item.annual_cost * percent / 100),
            difficulty=template.difficulty,
        ))
    return tuple(opportunities)


def generate_default_metrics(
    opportunities: Iterable[AutomationOpportunity],
    catalog: WizardCatalog = DEFAULT_CATALOG,
) -> tuple[SuccessMetric, ...]:
    """Seed success metrics from the opportunities' pain-point ids."""
    metrics = []
    for opp in opportunities:
        key = opp.pain_point_id
        if "lead" in opp.title.lower():
            key = "lead-response"

        templates = catalog.metric_templates.get(key)
        if not templates:
            templates = (generic_metric_template(opp.title, opp.estimated_time_savings_percent),)

        for template in templates:
            metrics.append(SuccessMetric(
                id=str(uuid.uuid4()),
                name=template.name,
                description=template.description,
                data_source=template.data_source,
                baseline_period=template.baseline_period,
                target_improvement=template.target_improvement,
            ))
    return tuple(metrics)


@dataclass(frozen=True)
class ValueSplit:
    """How measured savings divide between the consultancy and the client."""
    total_savings: int
    our_share: int
    their_share: int


def value_split(opportunities: Iterable[AutomationOpportunity], value_share_percent: float) -> ValueSplit:
    total = sum(o.estimated_revenue_impact for o in opportunities)
    ours = round_half_up(total * value_share_percent / 100)
    return ValueSplit(total_savings=total, our_share=ours, their_share=total - ours)


def hours_saved(hours_per_week: float, savings_pct: int) -> int:
    return round_half_up(hours_per_week * savings_pct / 100)
