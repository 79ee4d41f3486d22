"""
Tests for the wizard cost model and generators.

Pure functions only - no Flask app or storage needed.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from discovery.wizard.calculators import (
    ValueSplit,
    build_value_map,
    classify_impact,
    estimate_annual_cost,
    estimate_hourly_rate,
    generate_default_metrics,
    generate_opportunities,
    hours_saved,
    reconcile_value_map,
    recompute_with_rate,
    round_half_up,
    savings_percent,
    value_split,
)
from discovery.wizard.catalog import WizardCatalog
from discovery.wizard.models import (
    AutomationOpportunity,
    CustomerImpact,
    PainPoint,
)


def _point(pid, hours, selected=True, label=None):
    return PainPoint(id=pid, label=label or pid.title(), selected=selected, rank=0, hours_per_week=hours)


class TestHourlyRate:
    def test_revenue_and_team_size(self):
        assert estimate_hourly_rate("$100K - $500K", "2-5 people") == 35
        assert estimate_hourly_rate("$1M - $5M", "6-15 people") == 59  # 58.5 rounds up
        assert estimate_hourly_rate("Under $100K", "Just me") == 30

    def test_unknown_buckets_use_defaults(self):
        assert estimate_hourly_rate("Prefer not to say", "") == 40
        assert estimate_hourly_rate("", "50+ people") == 32

    def test_custom_catalog(self):
        catalog = WizardCatalog(revenue_rates={"Tiny": 10}, default_hourly_rate=20)
        assert estimate_hourly_rate("Tiny", "2-5 people", catalog) == 10
        assert estimate_hourly_rate("Huge", "2-5 people", catalog) == 20

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2


class TestAnnualCost:
    def test_heavy_pain_point_has_thirty_percent_surcharge(self):
        cost = estimate_annual_cost(12, 35)
        assert cost.labor_cost == 21840
        assert round_half_up(cost.revenue_lost) == 6552
        assert round_half_up(cost.annual_cost) == 28392

    def test_moderate_pain_point_has_fifteen_percent_surcharge(self):
        cost = estimate_annual_cost(6, 50)
        assert cost.labor_cost == 15600
        assert round_half_up(cost.annual_cost) == 17940

    def test_light_pain_point_has_no_surcharge(self):
        cost = estimate_annual_cost(5, 40)
        assert cost.revenue_lost == 0
        assert cost.annual_cost == 10400

    @pytest.mark.parametrize("rate", [20, 35, 59, 120])
    def test_cost_never_drops_as_hours_grow(self, rate):
        hours = [0, 0.5, 1, 4.5, 5, 5.5, 6, 9.5, 10, 10.5, 11, 20, 40, 80]
        costs = [estimate_annual_cost(h, rate).annual_cost for h in hours]
        assert costs == sorted(costs)

    @pytest.mark.parametrize("hours", [0, 3, 5, 6, 10, 12, 40])
    def test_cost_never_drops_as_rate_grows(self, hours):
        rates = [0, 10, 30, 35, 40, 59, 100, 250]
        costs = [estimate_annual_cost(hours, r).annual_cost for r in rates]
        assert costs == sorted(costs)


class TestImpactTiers:
    @pytest.mark.parametrize("cost,tier", [
        (20_000, CustomerImpact.LOW),
        (20_001, CustomerImpact.MEDIUM),
        (50_000, CustomerImpact.MEDIUM),
        (50_001, CustomerImpact.HIGH),
        (100_000, CustomerImpact.HIGH),
        (100_001, CustomerImpact.CRITICAL),
    ])
    def test_thresholds_are_strict(self, cost, tier):
        assert classify_impact(cost) == tier


class TestValueMap:
    def test_only_selected_points_with_hours(self):
        points = [
            _point("a", 3),
            _point("b", 12),
            _point("c", 0),
            _point("d", None),
            _point("e", 20, selected=False),
        ]
        items = build_value_map(points, 35)
        assert [v.pain_point_id for v in items] == ["b", "a"]

    def test_item_fields(self):
        (item,) = build_value_map([_point("lead-response", 12)], 35)
        assert item.annual_cost == 28392
        assert item.revenue_lost_per_year == 6552
        assert item.customer_impact == CustomerImpact.MEDIUM
        assert item.hourly_rate == 35

    def test_reconcile_keeps_overrides_for_unchanged_hours(self):
        points = [_point("a", 12), _point("b", 6)]
        items = build_value_map(points, 35)
        overridden = (
            recompute_with_rate(items[0], 80),
            items[1],
        )
        reconciled = reconcile_value_map(points, overridden, 35)
        assert reconciled[0].hourly_rate == 80

    def test_reconcile_recosts_changed_hours_at_item_rate(self):
        points = [_point("a", 12)]
        items = (recompute_with_rate(build_value_map(points, 35)[0], 80),)
        reconciled = reconcile_value_map([_point("a", 4)], items, 35)
        assert reconciled[0].hourly_rate == 80
        assert reconciled[0].annual_cost == 4 * 52 * 80

    def test_reconcile_drops_unselected_and_adds_new(self):
        items = build_value_map([_point("a", 12)], 35)
        reconciled = reconcile_value_map([_point("a", 12, selected=False), _point("b", 2)], items, 50)
        assert [(v.pain_point_id, v.hourly_rate) for v in reconciled] == [("b", 50)]

    def test_recompute_keeps_impact(self):
        (item,) = build_value_map([_point("a", 1)], 35)
        updated = recompute_with_rate(item, 500)
        assert updated.customer_impact == item.customer_impact
        assert updated.annual_cost == 1 * 52 * 500


class TestOpportunities:
    def test_savings_percent(self):
        assert savings_percent(11) == 70
        assert savings_percent(10) == 60
        assert savings_percent(6) == 60
        assert savings_percent(5) == 50

    def test_top_three_by_cost(self):
        points = [_point(pid, h) for pid, h in [
            ("lead-response", 12), ("scheduling", 6), ("data-entry", 2), ("reporting", 1),
        ]]
        opportunities = generate_opportunities(build_value_map(points, 35))
        assert len(opportunities) == 3
        assert [o.pain_point_id for o in opportunities] == ["lead-response", "scheduling", "data-entry"]

        lead = opportunities[0]
        assert lead.title == "AI Lead Response Agent"
        assert lead.estimated_time_savings_percent == 70
        assert lead.estimated_revenue_impact == round_half_up(28392 * 0.7)

    def test_custom_pain_point_gets_generic_agent(self):
        items = build_value_map([_point("custom-1", 4, label="Permit Tracking")], 35)
        (opp,) = generate_opportunities(items)
        assert opp.title == "Permit Tracking Automation Agent"
        assert opp.estimated_time_savings_percent == 50


class TestMetrics:
    def _opp(self, pain_point_id, title, percent=50):
        return AutomationOpportunity(
            id=pain_point_id,
            pain_point_id=pain_point_id,
            title=title,
            description="",
            estimated_time_savings_percent=percent,
        )

    def test_templates_by_pain_point(self):
        metrics = generate_default_metrics([
            self._opp("lead-response", "AI Lead Response Agent"),
            self._opp("scheduling", "Smart Scheduling Coordinator"),
        ])
        assert [m.name for m in metrics] == [
            "Lead Response Time",
            "Lead Conversion Rate",
            "Scheduling Time Saved",
        ]
        assert len({m.id for m in metrics}) == 3

    def test_lead_in_title_uses_lead_templates(self):
        metrics = generate_default_metrics([self._opp("custom-9", "Inbound Lead Agent")])
        assert metrics[0].name == "Lead Response Time"

    def test_generic_metric(self):
        (metric,) = generate_default_metrics([self._opp("invoicing", "Invoice & Follow-Up Agent", 60)])
        assert metric.name == "Invoice & Follow-Up Agent - Hours Saved"
        assert metric.target_improvement.startswith("60%")


class TestValueSplit:
    def test_split(self):
        opps = [
            AutomationOpportunity(id="1", pain_point_id="a", title="A", description="", estimated_revenue_impact=19874),
            AutomationOpportunity(id="2", pain_point_id="b", title="B", description="", estimated_revenue_impact=10764),
        ]
        split = value_split(opps, 12)
        assert split == ValueSplit(total_savings=30638, our_share=3677, their_share=26961)

    def test_empty(self):
        assert value_split([], 12) == ValueSplit(0, 0, 0)

    def test_hours_saved(self):
        assert hours_saved(12, 70) == 8
        assert hours_saved(3, 50) == 2
