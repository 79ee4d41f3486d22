"""
LLM providers for the discovery conversation.

- Groq (primary, hosted)
- Ollama (fallback, local)
"""

from .base import LLMConfig, LLMProvider, LLMResponse, Message, RateLimitError
from .groq_provider import GroqProvider
from .manager import LLMManager, LLMManagerConfig
from .ollama_provider import OllamaProvider

__all__ = [
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "RateLimitError",
    "GroqProvider",
    "OllamaProvider",
    "LLMManager",
    "LLMManagerConfig",
]
