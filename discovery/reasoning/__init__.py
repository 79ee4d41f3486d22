"""
Conversational discovery agent: prompt, reply contract and chat service.
"""

from .models import (
    DEFAULT_INSIGHTS,
    STAGE_LABELS,
    AgentReply,
    AutomationSuggestion,
    ChatMessage,
    ConversationStage,
    InsightData,
    PainPointInsight,
)
from .service import DiscoveryChatService, parse_agent_reply

__all__ = [
    "DEFAULT_INSIGHTS",
    "STAGE_LABELS",
    "AgentReply",
    "AutomationSuggestion",
    "ChatMessage",
    "ConversationStage",
    "InsightData",
    "PainPointInsight",
    "DiscoveryChatService",
    "parse_agent_reply",
]
