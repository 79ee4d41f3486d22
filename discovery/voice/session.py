"""
Voice session transcript and its stored form.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from ..reasoning.models import DEFAULT_INSIGHTS, ChatMessage, InsightData

AGENT = "agent"
CLIENT = "client"


@dataclass(frozen=True)
class TranscriptEntry:
    """One spoken utterance."""
    role: str  # "agent" or "client"
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "text": self.text, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptEntry":
        return cls(
            role=data["role"],
            text=data["text"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class VoiceSessionRecord:
    """
    What a voice session persists for recovery display.

    Stored under "voice-session-<id>"; never replayed.
    """
    transcript: Tuple[TranscriptEntry, ...] = ()
    messages: Tuple[ChatMessage, ...] = ()
    insights: InsightData = DEFAULT_INSIGHTS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcript": [e.to_dict() for e in self.transcript],
            "messages": [m.to_dict() for m in self.messages],
            "insights": self.insights.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoiceSessionRecord":
        return cls(
            transcript=tuple(TranscriptEntry.from_dict(e) for e in data.get("transcript", [])),
            messages=tuple(ChatMessage.from_dict(m) for m in data.get("messages", [])),
            insights=InsightData.from_dict(data.get("insights")),
        )
