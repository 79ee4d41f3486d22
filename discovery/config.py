"""
Application configuration.

Values come from the environment, with a `.env` file in the project root
loaded first (existing environment variables win).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Rachel: natural, warm, professional
DEFAULT_ELEVENLABS_VOICE = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_ELEVENLABS_MODEL = "eleven_turbo_v2_5"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    """Runtime settings shared by the web app and the voice CLI."""
    # Password gate
    app_password: Optional[str] = None
    session_secret: str = "fallback-secret"
    cookie_secure: bool = False

    # Reasoning service
    groq_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"
    ollama_host: Optional[str] = None
    ollama_model: str = "mistral:latest"

    # Speech synthesis
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_voice: str = DEFAULT_ELEVENLABS_VOICE
    elevenlabs_model: str = DEFAULT_ELEVENLABS_MODEL

    # Local persistence
    data_dir: str = "./sessions"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "AppConfig":
        """Build a config from `.env` plus the process environment."""
        load_dotenv(env_file or PROJECT_ROOT / ".env", override=False)

        return cls(
            app_password=os.environ.get("APP_PASSWORD") or None,
            session_secret=os.environ.get("SESSION_SECRET", "fallback-secret"),
            cookie_secure=_env_flag(
                "COOKIE_SECURE",
                default=os.environ.get("FLASK_ENV") == "production",
            ),
            groq_api_key=os.environ.get("GROQ_API_KEY") or None,
            groq_model=os.environ.get("GROQ_MODEL", cls.groq_model),
            ollama_host=os.environ.get("OLLAMA_HOST") or None,
            ollama_model=os.environ.get("OLLAMA_MODEL", cls.ollama_model),
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY") or None,
            elevenlabs_voice=os.environ.get("ELEVENLABS_VOICE", DEFAULT_ELEVENLABS_VOICE),
            elevenlabs_model=os.environ.get("ELEVENLABS_MODEL", DEFAULT_ELEVENLABS_MODEL),
            data_dir=os.environ.get("DISCOVERY_DATA_DIR", "./sessions"),
        )

    @property
    def tts_configured(self) -> bool:
        return bool(self.elevenlabs_api_key)
