"""
Groq LLM Provider.

Primary backend for the discovery conversation (llama-3.3-70b-versatile).
Uses the official SDK; https://console.groq.com issues API keys.
"""

import logging
from typing import List, Optional

from groq import Groq

from .base import (
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ProviderStatus,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class GroqProvider(LLMProvider):
    """Groq chat completions via the groq SDK."""

    DEFAULT_MODEL = "llama-3.3-70b-versatile"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        max_tokens: int = 1024,
        timeout: int = 30,
        client: Optional[Groq] = None,
    ):
        config = LLMConfig(
            provider_name="groq",
            model=model,
            api_key=api_key,
            base_url="https://api.groq.com/openai/v1",
            max_tokens=max_tokens,
            timeout=timeout,
        )
        super().__init__(config)

        self._client = client
        if self._client is None and api_key:
            self._client = Groq(api_key=api_key, timeout=timeout)
        if self._client is not None:
            self._status = ProviderStatus.AVAILABLE

    def is_available(self) -> bool:
        return self._client is not None and self._status != ProviderStatus.NOT_CONFIGURED

    def chat(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        if not self.is_available():
            raise RuntimeError("Groq not available. Set GROQ_API_KEY.")

        params = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = self._client.chat.completions.create(**params)
        except Exception as e:
            if getattr(e, "status_code", None) == 429 or "rate" in str(e).lower():
                self._status = ProviderStatus.RATE_LIMITED
                raise RateLimitError(f"Groq rate limit: {e}") from e
            self._status = ProviderStatus.ERROR
            raise

        self._status = ProviderStatus.AVAILABLE
        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            provider="groq",
            usage={
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "total_tokens": usage.total_tokens,
            } if usage else {},
            finish_reason=choice.finish_reason or "stop",
            raw_response=response,
        )
