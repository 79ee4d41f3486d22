"""
Data models for the conversational discovery agent.

Wire format uses the camelCase keys the chat endpoint returns
(`painPoints`, `hoursPerWeek`, `valueSharePercent`, ...).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ConversationStage(str, Enum):
    """Where the agent believes the conversation currently is."""
    INTRO = "intro"
    DISCOVERY = "discovery"
    QUANTIFICATION = "quantification"
    AUTOMATION = "automation"
    AGREEMENT = "agreement"
    COMPLETE = "complete"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]

    @property
    def index(self) -> int:
        return list(ConversationStage).index(self)


STAGE_LABELS = {
    ConversationStage.INTRO: "Getting acquainted",
    ConversationStage.DISCOVERY: "Discovering pain points",
    ConversationStage.QUANTIFICATION: "Measuring impact",
    ConversationStage.AUTOMATION: "Exploring solutions",
    ConversationStage.AGREEMENT: "Reviewing proposal",
    ConversationStage.COMPLETE: "Session complete",
}

DEFAULT_VALUE_SHARE = 12


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _whole(value: float):
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True)
class PainPointInsight:
    """A pain point the agent has heard about."""
    label: str
    hours_per_week: float = 0
    consequence: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "hoursPerWeek": _whole(self.hours_per_week),
            "consequence": self.consequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PainPointInsight":
        return cls(
            label=str(data.get("label", "")),
            hours_per_week=_number(data.get("hoursPerWeek")),
            consequence=str(data.get("consequence") or ""),
        )


@dataclass(frozen=True)
class AutomationSuggestion:
    """An automation the agent has proposed."""
    title: str
    description: str = ""
    estimated_savings: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "estimatedSavings": _whole(self.estimated_savings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutomationSuggestion":
        return cls(
            title=str(data.get("title", "")),
            description=str(data.get("description") or ""),
            estimated_savings=_number(data.get("estimatedSavings")),
        )


@dataclass(frozen=True)
class InsightData:
    """
    Structured summary of conversation progress.

    Each agent turn replaces the previous InsightData wholesale.
    """
    stage: ConversationStage = ConversationStage.INTRO
    pain_points: Tuple[PainPointInsight, ...] = ()
    estimated_annual_cost: float = 0
    automation_suggestions: Tuple[AutomationSuggestion, ...] = ()
    value_share_percent: float = DEFAULT_VALUE_SHARE
    ready_for_agreement: bool = False
    agreed_to_terms: bool = False

    @property
    def stage_label(self) -> str:
        return self.stage.label

    @property
    def total_hours_per_week(self) -> float:
        return sum(p.hours_per_week for p in self.pain_points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "painPoints": [p.to_dict() for p in self.pain_points],
            "estimatedAnnualCost": _whole(self.estimated_annual_cost),
            "automationSuggestions": [a.to_dict() for a in self.automation_suggestions],
            "valueSharePercent": _whole(self.value_share_percent),
            "readyForAgreement": self.ready_for_agreement,
            "agreedToTerms": self.agreed_to_terms,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InsightData":
        """Build insights from a payload, using defaults for missing or bad fields."""
        if not isinstance(data, dict):
            return DEFAULT_INSIGHTS
        try:
            stage = ConversationStage(data.get("stage", "intro"))
        except ValueError:
            stage = ConversationStage.INTRO
        pain_points = data.get("painPoints") or []
        suggestions = data.get("automationSuggestions") or []
        return cls(
            stage=stage,
            pain_points=tuple(
                PainPointInsight.from_dict(p) for p in pain_points if isinstance(p, dict)
            ),
            estimated_annual_cost=_number(data.get("estimatedAnnualCost")),
            automation_suggestions=tuple(
                AutomationSuggestion.from_dict(s) for s in suggestions if isinstance(s, dict)
            ),
            value_share_percent=_number(data.get("valueSharePercent"), DEFAULT_VALUE_SHARE),
            ready_for_agreement=data.get("readyForAgreement") is True,
            agreed_to_terms=data.get("agreedToTerms") is True,
        )


DEFAULT_INSIGHTS = InsightData()


@dataclass(frozen=True)
class ChatMessage:
    """One role-tagged turn of the exchange history."""
    role: str  # "user" or "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        role = data.get("role")
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid message role: {role!r}")
        return cls(role=role, content=str(data.get("content", "")))


@dataclass(frozen=True)
class AgentReply:
    """The agent's spoken reply plus its latest insights."""
    message: str
    insights: InsightData = field(default_factory=lambda: DEFAULT_INSIGHTS)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "insights": self.insights.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentReply":
        return cls(
            message=str(data.get("message", "")),
            insights=InsightData.from_dict(data.get("insights")),
        )


def messages_from_payload(items: List[Dict[str, Any]]) -> List[ChatMessage]:
    return [ChatMessage.from_dict(item) for item in items]
