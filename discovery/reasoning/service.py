"""
Discovery chat service.

One request/response turn against the LLM: the system prompt plus the full
exchange history goes out, an AgentReply comes back.
"""

import json
import logging
import re
from typing import List, Optional, Sequence

from ..errors import ReasoningServiceError
from ..config import AppConfig
from ..llm import LLMManager, LLMManagerConfig, Message
from .models import DEFAULT_INSIGHTS, AgentReply, ChatMessage
from .prompts import create_system_prompt

logger = logging.getLogger(__name__)

MAX_TOKENS = 1024

_OPEN_FENCE = re.compile(r"^```json\s*", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"```\s*$")


def strip_code_fences(raw: str) -> str:
    """Remove a leading ```json fence and a trailing ``` fence."""
    return _CLOSE_FENCE.sub("", _OPEN_FENCE.sub("", raw)).strip()


def parse_agent_reply(raw: str) -> AgentReply:
    """
    Parse model output into an AgentReply.

    Output that is not a JSON object becomes the spoken message as-is,
    paired with the default insights.
    """
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        data = None

    if not isinstance(data, dict):
        logger.warning("Agent reply was not a JSON object; using raw text")
        return AgentReply(message=raw, insights=DEFAULT_INSIGHTS)

    return AgentReply.from_dict(data)


class DiscoveryChatService:
    """
    Sends discovery turns to the language model.

    Usage:
        service = DiscoveryChatService.from_app_config(config)
        reply = service.respond(messages, business_name="Acme Plumbing")
    """

    def __init__(self, llm: LLMManager, max_tokens: int = MAX_TOKENS, json_mode: bool = True):
        self.llm = llm
        self.max_tokens = max_tokens
        self.json_mode = json_mode

    @classmethod
    def from_app_config(cls, app_config: AppConfig, **kwargs) -> "DiscoveryChatService":
        """A failed turn is handed back at once; only provider fallback applies."""
        llm = LLMManager.from_app_config(app_config, config=LLMManagerConfig(max_retries=0))
        return cls(llm, **kwargs)

    def build_messages(
        self,
        messages: Sequence[ChatMessage],
        business_name: str,
        notes: Optional[str] = None,
    ) -> List[Message]:
        prompt = [Message(role="system", content=create_system_prompt(business_name, notes))]
        prompt.extend(Message(role=m.role, content=m.content) for m in messages)
        return prompt

    def respond(
        self,
        messages: Sequence[ChatMessage],
        business_name: str,
        notes: Optional[str] = None,
    ) -> AgentReply:
        """
        Run one reasoning turn.

        Args:
            messages: Exchange history so far (may be empty for the opening turn)
            business_name: Name of the business being interviewed
            notes: Optional pre-session notes

        Returns:
            AgentReply with the spoken message and the latest insights

        Raises:
            ReasoningServiceError: If no provider produced a response
        """
        try:
            response = self.llm.chat(
                self.build_messages(messages, business_name, notes),
                max_tokens=self.max_tokens,
                json_mode=self.json_mode,
            )
        except Exception as e:
            logger.error("Discovery chat failed: %s", e)
            raise ReasoningServiceError("Failed to get agent response") from e

        logger.debug("Agent reply from %s (%d tokens)", response.provider, response.tokens_used)
        return parse_agent_reply(response.content)
