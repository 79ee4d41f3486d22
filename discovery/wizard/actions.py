"""
Session commands and the transition function that applies them.

reduce() is total over SessionAction: every variant maps the current
snapshot to a new one, anything else leaves the session unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Union

from .models import (
    Agreement,
    AutomationOpportunity,
    BusinessSnapshot,
    DiscoverySession,
    PainPoint,
    SuccessMetric,
    ValueMapItem,
)

_SNAPSHOT_FIELDS = {f.name for f in fields(BusinessSnapshot)}
_AGREEMENT_FIELDS = {f.name for f in fields(Agreement)}
_AGREEMENT_TEXT_FIELDS = {"client_name", "client_email"}
_METRIC_FIELDS = {f.name for f in fields(SuccessMetric)}


@dataclass(frozen=True)
class SetStep:
    step: int


@dataclass(frozen=True)
class UpdateSnapshot:
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SetPainPoints:
    pain_points: tuple[PainPoint, ...]


@dataclass(frozen=True)
class SetValueMap:
    value_map: tuple[ValueMapItem, ...]


@dataclass(frozen=True)
class SetOpportunities:
    opportunities: tuple[AutomationOpportunity, ...]


@dataclass(frozen=True)
class UpdateAgreement:
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadSession:
    session: DiscoverySession


SessionAction = Union[
    SetStep,
    UpdateSnapshot,
    SetPainPoints,
    SetValueMap,
    SetOpportunities,
    UpdateAgreement,
    LoadSession,
]


def _checked(data: dict[str, Any], allowed: set[str], target: str) -> dict[str, Any]:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown {target} field(s): {', '.join(sorted(unknown))}")
    return data


def _require_text(data: dict[str, Any], names: set[str], target: str) -> None:
    wrong = sorted(name for name in names & set(data) if not isinstance(data[name], str))
    if wrong:
        raise ValueError(f"{target.capitalize()} field(s) must be text: {', '.join(wrong)}")


def reduce(state: DiscoverySession, action: SessionAction) -> DiscoverySession:
    """Apply one command and return the next session snapshot."""
    if isinstance(action, SetStep):
        return replace(state, current_step=action.step)

    if isinstance(action, UpdateSnapshot):
        data = _checked(action.data, _SNAPSHOT_FIELDS, "snapshot")
        _require_text(data, _SNAPSHOT_FIELDS, "snapshot")
        return replace(state, business_snapshot=replace(state.business_snapshot, **data))

    if isinstance(action, SetPainPoints):
        return replace(state, pain_points=tuple(action.pain_points))

    if isinstance(action, SetValueMap):
        return replace(state, value_map=tuple(action.value_map))

    if isinstance(action, SetOpportunities):
        return replace(state, automation_opportunities=tuple(action.opportunities))

    if isinstance(action, UpdateAgreement):
        data = _checked(action.data, _AGREEMENT_FIELDS, "agreement")
        _require_text(data, _AGREEMENT_TEXT_FIELDS, "agreement")
        if "metrics" in data:
            for metric in data["metrics"]:
                _require_text(vars(metric), _METRIC_FIELDS, "metric")
            data = {**data, "metrics": tuple(data["metrics"])}
        return replace(state, agreement=replace(state.agreement, **data))

    if isinstance(action, LoadSession):
        return action.session

    return state
