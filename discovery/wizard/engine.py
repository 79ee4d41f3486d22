"""
Discovery Wizard - six-stage linear state machine.

Flow:
1. SNAPSHOT: business identity and a narrative of a typical day
2. PAIN_POINTS: select/rank catalog or custom pain points, estimate hours
3. VALUE_MAPPING: annual cost per pain point (rate and impact editable)
4. AUTOMATION: top three agents, generated once per session
5. METRICS: success metrics plus value-share and period terms
6. AGREEMENT: read-only rollup, sign-off and document export

Every operation dispatches one or more SessionAction commands through
reduce(); the wizard only holds the latest immutable snapshot.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from ..errors import AgreementError, StepGuardError
from .actions import (
    SessionAction,
    SetOpportunities,
    SetPainPoints,
    SetStep,
    SetValueMap,
    UpdateAgreement,
    UpdateSnapshot,
    reduce,
)
from .calculators import (
    ValueSplit,
    build_value_map,
    estimate_hourly_rate,
    generate_default_metrics,
    generate_opportunities,
    reconcile_value_map,
    recompute_with_rate,
    value_split,
)
from .catalog import DEFAULT_CATALOG, WizardCatalog
from .models import (
    Agreement,
    BusinessSnapshot,
    CustomerImpact,
    DiscoverySession,
    PainPoint,
    SuccessMetric,
    WizardStep,
)

logger = logging.getLogger(__name__)

MIN_TYPICAL_DAY_LENGTH = 10
MIN_SELECTED_PAIN_POINTS = 2
MAX_HOURS_PER_WEEK = 168
VALUE_SHARE_BOUNDS = (5, 25)
PERIOD_DAY_BOUNDS = (14, 90)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp(value: float, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return int(max(low, min(high, value)))


def new_session(
    session_id: Optional[str] = None,
    catalog: WizardCatalog = DEFAULT_CATALOG,
    now: Callable[[], datetime] = _utcnow,
) -> DiscoverySession:
    """Create a session with all-default values."""
    return DiscoverySession(
        id=session_id or str(uuid.uuid4()),
        created_at=now().isoformat(),
        current_step=WizardStep.SNAPSHOT.value,
        business_snapshot=BusinessSnapshot(),
        pain_points=tuple(PainPoint(id=t.id, label=t.label) for t in catalog.pain_points),
        agreement=Agreement(),
    )


def _with_compact_ranks(points: list[PainPoint]) -> tuple[PainPoint, ...]:
    """Renumber ranks 0..n-1 over selected points in their current rank order."""
    selected = sorted(
        (p for p in points if p.selected),
        key=lambda p: p.rank if p.rank is not None else len(points),
    )
    new_rank = {p.id: i for i, p in enumerate(selected)}
    return tuple(
        replace(p, rank=new_rank[p.id]) if p.selected else replace(p, rank=None)
        for p in points
    )


class DiscoveryWizard:
    """
    Drives one DiscoverySession through the six wizard stages.

    Usage:
        wizard = DiscoveryWizard(new_session())
        wizard.update_snapshot(business_name="Coastal Property Group", ...)
        wizard.next_step()
    """

    def __init__(
        self,
        session: Optional[DiscoverySession] = None,
        catalog: WizardCatalog = DEFAULT_CATALOG,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.catalog = catalog
        self._now = now
        self._session = session or new_session(catalog=catalog, now=now)

    @property
    def session(self) -> DiscoverySession:
        return self._session

    def dispatch(self, action: SessionAction) -> DiscoverySession:
        self._session = reduce(self._session, action)
        return self._session

    # ── Stage 1: snapshot ───────────────────────────────────────

    def update_snapshot(self, **data) -> DiscoverySession:
        """Update business identity fields; re-costs the value map if the rate moved."""
        if self._session.current_step != WizardStep.SNAPSHOT:
            raise StepGuardError("The business snapshot can only be edited on the first step")
        old_rate = self.hourly_rate
        self.dispatch(UpdateSnapshot(data))
        if self.hourly_rate != old_rate and self._session.value_map:
            self.dispatch(SetValueMap(build_value_map(self._session.pain_points, self.hourly_rate)))
        return self._session

    # ── Stage 2: pain points ────────────────────────────────────

    def _set_pain_points(self, points) -> DiscoverySession:
        points = _with_compact_ranks(list(points))
        self.dispatch(SetPainPoints(points))
        self.dispatch(SetValueMap(
            reconcile_value_map(points, self._session.value_map, self.hourly_rate)
        ))
        return self._session

    def _require_point(self, pain_point_id: str) -> PainPoint:
        point = self._session.find_pain_point(pain_point_id)
        if point is None:
            raise KeyError(f"Unknown pain point: {pain_point_id}")
        return point

    def toggle_pain_point(self, pain_point_id: str) -> DiscoverySession:
        self._require_point(pain_point_id)
        selected_count = len(self._session.selected_pain_points)
        return self._set_pain_points(
            replace(
                p,
                selected=not p.selected,
                rank=None if p.selected else selected_count,
            ) if p.id == pain_point_id else p
            for p in self._session.pain_points
        )

    def add_custom_pain_point(self, label: str) -> DiscoverySession:
        """Add a user-authored pain point, selected and ranked last. Blank labels are ignored."""
        label = (label or "").strip()
        if not label:
            return self._session
        point = PainPoint(
            id=str(uuid.uuid4()),
            label=label,
            is_custom=True,
            selected=True,
            rank=len(self._session.selected_pain_points),
        )
        return self._set_pain_points(list(self._session.pain_points) + [point])

    def remove_pain_point(self, pain_point_id: str) -> DiscoverySession:
        point = self._require_point(pain_point_id)
        if not point.is_custom:
            raise ValueError("Only custom pain points can be removed")
        return self._set_pain_points(p for p in self._session.pain_points if p.id != pain_point_id)

    def update_hours(self, pain_point_id: str, hours: Optional[float]) -> DiscoverySession:
        self._require_point(pain_point_id)
        if hours is not None:
            hours = max(0, min(MAX_HOURS_PER_WEEK, float(hours)))
        return self._set_pain_points(
            replace(p, hours_per_week=hours) if p.id == pain_point_id else p
            for p in self._session.pain_points
        )

    def update_consequence(self, pain_point_id: str, text: str) -> DiscoverySession:
        self._require_point(pain_point_id)
        return self._set_pain_points(
            replace(p, consequence=text) if p.id == pain_point_id else p
            for p in self._session.pain_points
        )

    def reorder_pain_point(self, pain_point_id: str, over_id: str) -> DiscoverySession:
        """Move a selected pain point to the rank of another (drag-and-drop)."""
        ordered = self._session.selected_pain_points
        ids = [p.id for p in ordered]
        if pain_point_id not in ids or over_id not in ids or pain_point_id == over_id:
            return self._session

        old_index, new_index = ids.index(pain_point_id), ids.index(over_id)
        ordered.insert(new_index, ordered.pop(old_index))
        new_rank = {p.id: i for i, p in enumerate(ordered)}
        return self._set_pain_points(
            replace(p, rank=new_rank[p.id]) if p.id in new_rank else p
            for p in self._session.pain_points
        )

    # ── Stage 3: value mapping ──────────────────────────────────

    @property
    def hourly_rate(self) -> int:
        snap = self._session.business_snapshot
        return estimate_hourly_rate(snap.revenue_range, snap.team_size, self.catalog)

    def refresh_value_map(self) -> DiscoverySession:
        return self.dispatch(SetValueMap(
            reconcile_value_map(self._session.pain_points, self._session.value_map, self.hourly_rate)
        ))

    def update_item_rate(self, pain_point_id: str, hourly_rate: float) -> DiscoverySession:
        return self.dispatch(SetValueMap(tuple(
            recompute_with_rate(v, float(hourly_rate)) if v.pain_point_id == pain_point_id else v
            for v in self._session.value_map
        )))

    def update_item_impact(self, pain_point_id: str, impact) -> DiscoverySession:
        impact = CustomerImpact(impact)
        return self.dispatch(SetValueMap(tuple(
            replace(v, customer_impact=impact) if v.pain_point_id == pain_point_id else v
            for v in self._session.value_map
        )))

    @property
    def total_annual_cost(self) -> int:
        return sum(v.annual_cost for v in self._session.value_map)

    @property
    def total_hours_per_week(self) -> float:
        return sum(v.hours_per_week for v in self._session.value_map)

    # ── Stage 4: automation opportunities ───────────────────────

    def ensure_opportunities(self) -> DiscoverySession:
        """Generate opportunities once; later value-map edits do not regenerate them."""
        if self._session.value_map and not self._session.automation_opportunities:
            opportunities = generate_opportunities(self._session.value_map, self.catalog)
            logger.debug("Generated %d automation opportunities", len(opportunities))
            self.dispatch(SetOpportunities(opportunities))
        return self._session

    # ── Stage 5: metrics & terms ────────────────────────────────

    def _ensure_editable(self):
        if self._session.is_agreed:
            raise AgreementError("Agreement already confirmed; the document is frozen")

    def ensure_metrics(self) -> DiscoverySession:
        agreement = self._session.agreement
        if not agreement.metrics and self._session.automation_opportunities and not self._session.is_agreed:
            metrics = generate_default_metrics(self._session.automation_opportunities, self.catalog)
            self.dispatch(UpdateAgreement({"metrics": metrics}))
        return self._session

    def add_metric(self, **data) -> DiscoverySession:
        self._ensure_editable()
        metric = SuccessMetric(id=str(uuid.uuid4()), **data)
        return self.dispatch(UpdateAgreement({"metrics": self._session.agreement.metrics + (metric,)}))

    def update_metric(self, metric_id: str, **data) -> DiscoverySession:
        self._ensure_editable()
        data.pop("id", None)
        return self.dispatch(UpdateAgreement({"metrics": tuple(
            replace(m, **data) if m.id == metric_id else m
            for m in self._session.agreement.metrics
        )}))

    def remove_metric(self, metric_id: str) -> DiscoverySession:
        self._ensure_editable()
        return self.dispatch(UpdateAgreement({"metrics": tuple(
            m for m in self._session.agreement.metrics if m.id != metric_id
        )}))

    def set_terms(
        self,
        value_share_percent: Optional[float] = None,
        baseline_days: Optional[int] = None,
        measurement_days: Optional[int] = None,
    ) -> DiscoverySession:
        """Adjust the three agreement parameters, clamped to their allowed ranges."""
        self._ensure_editable()
        data = {}
        if value_share_percent is not None:
            data["value_share_percent"] = _clamp(value_share_percent, VALUE_SHARE_BOUNDS)
        if baseline_days is not None:
            data["baseline_days"] = _clamp(baseline_days, PERIOD_DAY_BOUNDS)
        if measurement_days is not None:
            data["measurement_days"] = _clamp(measurement_days, PERIOD_DAY_BOUNDS)
        return self.dispatch(UpdateAgreement(data))

    # ── Stage 6: agreement ──────────────────────────────────────

    @property
    def value_split(self) -> ValueSplit:
        return value_split(
            self._session.automation_opportunities,
            self._session.agreement.value_share_percent,
        )

    def set_signer(self, client_name: Optional[str] = None, client_email: Optional[str] = None) -> DiscoverySession:
        self._ensure_editable()
        data = {}
        if client_name is not None:
            data["client_name"] = client_name
        if client_email is not None:
            data["client_email"] = client_email
        return self.dispatch(UpdateAgreement(data))

    def agree(self, client_name: Optional[str] = None, client_email: Optional[str] = None) -> DiscoverySession:
        """
        Confirm the agreement.

        Stamps agreed_at exactly once. Calling again after confirmation
        returns the session unchanged.
        """
        if self._session.is_agreed:
            return self._session

        if client_name is not None or client_email is not None:
            self.set_signer(client_name, client_email)

        agreement = self._session.agreement
        if not agreement.client_name.strip() or not agreement.client_email.strip():
            raise AgreementError("Signer name and email are required to agree")

        logger.info("Session %s agreed by %s", self._session.id, agreement.client_name)
        return self.dispatch(UpdateAgreement({"agreed_at": self._now().isoformat()}))

    # ── Navigation ──────────────────────────────────────────────

    def guard_message(self, step: Optional[WizardStep] = None) -> Optional[str]:
        """Why the given (default: current) step cannot advance, or None."""
        step = WizardStep(self._session.current_step if step is None else step)
        session = self._session

        if step == WizardStep.SNAPSHOT:
            snap = session.business_snapshot
            if not snap.business_name.strip():
                return "Business name is required"
            if not snap.industry.strip():
                return "Industry is required"
            if not snap.team_size.strip():
                return "Team size is required"
            if len(snap.typical_day.strip()) <= MIN_TYPICAL_DAY_LENGTH:
                return "Describe a typical day in a little more detail"
            return None

        if step == WizardStep.PAIN_POINTS:
            selected = session.selected_pain_points
            if len(selected) < MIN_SELECTED_PAIN_POINTS:
                return f"Select at least {MIN_SELECTED_PAIN_POINTS} pain points"
            if not any((p.hours_per_week or 0) > 0 for p in selected):
                return "Estimate hours per week for at least one pain point"
            return None

        if step == WizardStep.VALUE_MAPPING:
            return None if session.value_map else "No pain points with hours to value yet"

        if step == WizardStep.METRICS:
            metrics = session.agreement.metrics
            if not metrics:
                return "Add at least one success metric"
            if any(not m.name.strip() for m in metrics):
                return "Every success metric needs a name"
            return None

        if step == WizardStep.AGREEMENT:
            return "The agreement is the final step"

        return None

    def can_proceed(self, step: Optional[WizardStep] = None) -> bool:
        return self.guard_message(step) is None

    def _enter(self, step: WizardStep):
        """Derive the data a stage shows when it is entered."""
        if step == WizardStep.VALUE_MAPPING:
            self.refresh_value_map()
        elif step == WizardStep.AUTOMATION:
            self.ensure_opportunities()
        elif step == WizardStep.METRICS:
            self.ensure_metrics()

    def next_step(self) -> DiscoverySession:
        message = self.guard_message()
        if message:
            raise StepGuardError(message)

        step = WizardStep(self._session.current_step + 1)
        self.dispatch(SetStep(step.value))
        self._enter(step)
        logger.debug("Session %s advanced to %s", self._session.id, step.name)
        return self._session

    def back(self) -> DiscoverySession:
        """Go back one step; later-stage data is kept."""
        if self._session.current_step > 0:
            self.dispatch(SetStep(self._session.current_step - 1))
        return self._session

    def reset(self) -> DiscoverySession:
        """Discard everything and start over under the same session id."""
        self._session = new_session(self._session.id, self.catalog, self._now)
        return self._session
