"""
Ollama LLM Provider.

Local fallback for the discovery conversation when Groq is not configured
or rate limited. Talks to the Ollama HTTP API with requests.

Install: https://ollama.ai, then `ollama pull mistral`.
"""

import logging
from typing import List, Optional

import requests

from .base import (
    LLMConfig,
    LLMProvider,
    LLMResponse,
    Message,
    ProviderStatus,
)

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """Ollama /api/chat backend."""

    DEFAULT_MODEL = "mistral:latest"
    DEFAULT_HOST = "http://localhost:11434"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        host: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: int = 120,  # local inference can be slow
        check_server: bool = True,
    ):
        self.host = (host or self.DEFAULT_HOST).rstrip("/")
        config = LLMConfig(
            provider_name="ollama",
            model=model,
            base_url=self.host,
            max_tokens=max_tokens,
            timeout=timeout,
        )
        super().__init__(config)
        if check_server:
            self._check_availability()

    def _check_availability(self):
        """Check that the server is running and whether the model is pulled."""
        try:
            response = requests.get(f"{self.host}/api/tags", timeout=5)
        except requests.RequestException:
            self._status = ProviderStatus.NOT_CONFIGURED
            return

        if response.status_code != 200:
            logger.warning("Ollama at %s answered %s", self.host, response.status_code)
            self._status = ProviderStatus.NOT_CONFIGURED
            return

        self._status = ProviderStatus.AVAILABLE
        names = [m.get("name", "") for m in response.json().get("models", [])]
        if not any(self.config.model in name for name in names):
            logger.warning(
                "Ollama model '%s' not pulled (available: %s); run `ollama pull %s`",
                self.config.model, ", ".join(names) or "none", self.config.model,
            )

    def is_available(self) -> bool:
        return self._status in (ProviderStatus.AVAILABLE, ProviderStatus.ERROR)

    def chat(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        if not self.is_available():
            raise RuntimeError("Ollama not available. Start it with `ollama serve`.")

        payload = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "stream": False,
            "options": {
                "temperature": self.config.temperature if temperature is None else temperature,
                "num_predict": max_tokens or self.config.max_tokens,
            },
        }
        if json_mode:
            payload["format"] = "json"

        try:
            response = requests.post(
                f"{self.host}/api/chat",
                json=payload,
                timeout=self.config.timeout,
            )
            response.raise_for_status()
        except requests.Timeout as e:
            raise RuntimeError(
                f"Ollama request timed out after {self.config.timeout}s"
            ) from e
        except requests.RequestException as e:
            self._status = ProviderStatus.ERROR
            raise RuntimeError(f"Ollama request failed: {e}") from e

        self._status = ProviderStatus.AVAILABLE
        data = response.json()
        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)
        return LLMResponse(
            content=data["message"]["content"],
            model=data.get("model", self.config.model),
            provider="ollama",
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            finish_reason=data.get("done_reason", "stop"),
            raw_response=data,
        )
