"""
Tests for environment configuration and the voice CLI helpers.
"""

import io
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from discovery import voice_cli
from discovery.config import DEFAULT_ELEVENLABS_VOICE, AppConfig
from discovery.reasoning.models import InsightData, PainPointInsight
from discovery.voice import AgentState, VoiceConfig
from discovery.voice.session import AGENT, TranscriptEntry

ENV_VARS = [
    "APP_PASSWORD", "SESSION_SECRET", "COOKIE_SECURE", "FLASK_ENV", "GROQ_API_KEY",
    "GROQ_MODEL", "OLLAMA_HOST", "OLLAMA_MODEL", "ELEVENLABS_API_KEY",
    "ELEVENLABS_VOICE", "ELEVENLABS_MODEL", "DISCOVERY_DATA_DIR",
]


def _clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestAppConfig:
    def test_defaults(self, monkeypatch, tmp_path):
        _clear_env(monkeypatch)
        config = AppConfig.from_env(tmp_path / "missing.env")
        assert config.app_password is None
        assert config.session_secret == "fallback-secret"
        assert config.cookie_secure is False
        assert config.groq_model == "llama-3.3-70b-versatile"
        assert config.ollama_model == "mistral:latest"
        assert config.elevenlabs_voice == DEFAULT_ELEVENLABS_VOICE
        assert not config.tts_configured

    def test_from_env(self, monkeypatch, tmp_path):
        _clear_env(monkeypatch)
        monkeypatch.setenv("APP_PASSWORD", "pw")
        monkeypatch.setenv("GROQ_API_KEY", "gsk_test")
        monkeypatch.setenv("ELEVENLABS_API_KEY", "xi_test")
        monkeypatch.setenv("DISCOVERY_DATA_DIR", str(tmp_path))
        config = AppConfig.from_env(tmp_path / "missing.env")
        assert config.app_password == "pw"
        assert config.groq_api_key == "gsk_test"
        assert config.tts_configured
        assert config.data_dir == str(tmp_path)

    def test_production_cookies_are_secure(self, monkeypatch, tmp_path):
        _clear_env(monkeypatch)
        monkeypatch.setenv("FLASK_ENV", "production")
        assert AppConfig.from_env(tmp_path / "missing.env").cookie_secure is True
        monkeypatch.setenv("COOKIE_SECURE", "false")
        assert AppConfig.from_env(tmp_path / "missing.env").cookie_secure is False

    def test_dotenv_file(self, monkeypatch, tmp_path):
        _clear_env(monkeypatch)
        env_file = tmp_path / ".env"
        env_file.write_text("APP_PASSWORD=from-file\nSESSION_SECRET=abc\n")
        try:
            config = AppConfig.from_env(env_file)
        finally:
            os.environ.pop("APP_PASSWORD", None)
            os.environ.pop("SESSION_SECRET", None)
        assert config.app_password == "from-file"
        assert config.session_secret == "abc"


class TestVoiceCli:
    def test_read_commands(self, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO("m\n\nq\nm\n"))
        controller, loop = MagicMock(), MagicMock()

        voice_cli.read_commands(controller, loop)

        calls = [c[0][0] for c in loop.call_soon_threadsafe.call_args_list]
        assert calls == [controller.toggle_mute, controller.stop]

    def test_print_update(self, capsys):
        controller = MagicMock()
        controller.transcript = (TranscriptEntry(role=AGENT, text="Hi there"),)
        controller.state = AgentState.LISTENING
        controller.insights = InsightData(pain_points=(PainPointInsight("Scheduling", 6),),
                                          estimated_annual_cost=18720)

        voice_cli.print_update("transcript", controller)
        voice_cli.print_update("state", controller)
        voice_cli.print_update("insights", controller)

        out = capsys.readouterr().out
        assert "Agent: Hi there" in out
        assert "Listening" in out
        assert "[Getting acquainted 1/6]" in out
        assert "1 pain points, 6h/wk, ~$18,720/yr" in out

    @patch("discovery.voice_cli.DiscoveryChatService")
    @patch("discovery.voice_cli.SpeechToText")
    def test_build_controller(self, mock_stt, mock_service, tmp_path):
        config = AppConfig(data_dir=str(tmp_path))

        controller = voice_cli.build_controller(
            config, VoiceConfig(whisper_model="small"), "Acme Plumbing", session_id="v1",
        )

        mock_stt.assert_called_once_with(model_size="small", language="en")
        assert controller.business_name == "Acme Plumbing"
        assert controller.speaker.provider == "pyttsx3"
        assert controller.store.data_dir == tmp_path
        mock_service.from_app_config.assert_called_once_with(config)
        assert controller.reasoner is mock_service.from_app_config.return_value
