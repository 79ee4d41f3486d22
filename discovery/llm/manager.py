"""
LLM Manager - one chat entry point over the configured providers.

Tries providers in priority order, retries transient errors with
exponential backoff and falls back to the next provider when one is rate
limited or keeps failing.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ..config import AppConfig
from .base import LLMProvider, LLMResponse, Message, ProviderStatus, RateLimitError
from .groq_provider import GroqProvider
from .ollama_provider import OllamaProvider

logger = logging.getLogger(__name__)


@dataclass
class LLMManagerConfig:
    """Configuration for the LLM Manager."""
    provider_priority: List[str] = field(default_factory=lambda: ["groq", "ollama"])
    auto_fallback: bool = True
    max_retries: int = 2
    rate_limit_cooldown: timedelta = timedelta(hours=1)


class LLMManager:
    """
    Selects a provider per request with retry and failover.

    Usage:
        manager = LLMManager.from_app_config(AppConfig.from_env())
        response = manager.chat([Message(role="user", content="Hello")])
    """

    def __init__(
        self,
        providers: Dict[str, LLMProvider],
        config: Optional[LLMManagerConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or LLMManagerConfig()
        self._providers = dict(providers)
        self._cooldown_until: Dict[str, datetime] = {}
        self._sleep = sleep

    @classmethod
    def from_app_config(cls, app_config: AppConfig, **kwargs) -> "LLMManager":
        """Build the manager from environment-derived settings."""
        providers: Dict[str, LLMProvider] = {}
        if app_config.groq_api_key:
            providers["groq"] = GroqProvider(
                api_key=app_config.groq_api_key,
                model=app_config.groq_model,
            )
            logger.info("Groq provider initialized (%s)", app_config.groq_model)
        ollama = OllamaProvider(model=app_config.ollama_model, host=app_config.ollama_host)
        if ollama.is_available():
            providers["ollama"] = ollama
            logger.info("Ollama provider initialized (%s)", app_config.ollama_model)
        if not providers:
            logger.warning("No LLM provider configured; set GROQ_API_KEY or run Ollama")
        return cls(providers, **kwargs)

    # ── Provider selection ──────────────────────────────────────

    def _candidates(self) -> List[str]:
        now = datetime.now()
        names = []
        for name in self.config.provider_priority:
            provider = self._providers.get(name)
            if provider is None:
                continue
            reset = self._cooldown_until.get(name)
            if provider.status == ProviderStatus.RATE_LIMITED and reset and now < reset:
                continue
            names.append(name)
        return names

    # ── Requests ────────────────────────────────────────────────

    def _call_with_retry(self, name: str, messages: List[Message], **kwargs) -> LLMResponse:
        provider = self._providers[name]
        attempt = 0
        while True:
            try:
                response = provider.chat(messages, **kwargs)
            except RateLimitError:
                self._cooldown_until[name] = datetime.now() + self.config.rate_limit_cooldown
                raise
            except Exception as e:
                if attempt >= self.config.max_retries:
                    raise
                wait = (2 ** attempt) * 1.0
                attempt += 1
                logger.warning(
                    "Error on %s, retrying in %.0fs (%d/%d): %s",
                    name, wait, attempt, self.config.max_retries, e,
                )
                self._sleep(wait)
                continue
            return response

    def chat(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        provider: Optional[str] = None,
    ) -> LLMResponse:
        """
        Send a chat completion request with retry and fallback.

        Args:
            messages: Conversation messages
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: Constrain output to a JSON object
            provider: Force a specific provider

        Returns:
            LLMResponse from the first provider that succeeds

        Raises:
            RuntimeError: If no provider is available
        """
        if provider:
            if provider not in self._providers:
                raise RuntimeError(f"Provider '{provider}' not available")
            names = [provider]
        else:
            names = self._candidates()
            if not self.config.auto_fallback:
                names = names[:1]

        if not names:
            raise RuntimeError(
                "No LLM providers available. Set GROQ_API_KEY or run `ollama serve`."
            )

        last_error: Optional[Exception] = None
        for name in names:
            try:
                return self._call_with_retry(
                    name, messages,
                    temperature=temperature, max_tokens=max_tokens, json_mode=json_mode,
                )
            except Exception as e:
                last_error = e
                if name != names[-1]:
                    logger.warning("Provider %s failed, falling back: %s", name, e)
        raise last_error
