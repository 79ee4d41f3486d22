"""
Tests for speech output: ElevenLabs client, local voice selection and the
Speaker fallback chain.

requests is patched; no audio device is touched.
"""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from discovery.errors import SpeechSynthesisError
from discovery.voice.text_to_speech import (
    ELEVENLABS_API_URL,
    AudioPlayer,
    ElevenLabsClient,
    Speaker,
    choose_voice,
)


def _voice(name, languages=(), voice_id=""):
    return SimpleNamespace(name=name, languages=list(languages), id=voice_id or name)


class TestElevenLabsClient:
    @patch("discovery.voice.text_to_speech.requests.post")
    def test_synthesize(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, content=b"ID3mp3")
        client = ElevenLabsClient(api_key="xi-test", voice_id="voice-1", model_id="eleven_turbo_v2_5")

        assert client.synthesize("Hello there") == b"ID3mp3"

        args, kwargs = mock_post.call_args
        assert args[0] == f"{ELEVENLABS_API_URL}/voice-1"
        assert kwargs["headers"]["xi-api-key"] == "xi-test"
        assert kwargs["headers"]["Accept"] == "audio/mpeg"
        assert kwargs["json"]["model_id"] == "eleven_turbo_v2_5"
        assert kwargs["json"]["voice_settings"] == {
            "stability": 0.5,
            "similarity_boost": 0.75,
            "style": 0.3,
            "use_speaker_boost": True,
        }

    def test_blank_text(self):
        with pytest.raises(ValueError):
            ElevenLabsClient(api_key="xi-test").synthesize("   ")

    @patch("discovery.voice.text_to_speech.requests.post")
    def test_upstream_error(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=401, text="invalid key")
        with pytest.raises(SpeechSynthesisError, match="TTS failed"):
            ElevenLabsClient(api_key="bad").synthesize("Hello")

    @patch("discovery.voice.text_to_speech.requests.post")
    def test_network_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("offline")
        with pytest.raises(SpeechSynthesisError):
            ElevenLabsClient(api_key="xi-test").synthesize("Hello")


class TestChooseVoice:
    def test_priority_order(self):
        voices = [
            _voice("Samantha", ["en_US"]),
            _voice("Ava (Enhanced)", ["en-US"]),
        ]
        assert choose_voice(voices).name == "Ava (Enhanced)"

    def test_priority_requires_english(self):
        voices = [_voice("Ava", ["fr-FR"]), _voice("Daniel", ["en-GB"])]
        assert choose_voice(voices) is None

    def test_falls_back_to_any_us_english(self):
        voices = [_voice("Thomas", ["fr-FR"]), _voice("Fred", [b"\x05en_US"])]
        assert choose_voice(voices).name == "Fred"

    def test_language_from_voice_id(self):
        voices = [_voice("Karen", voice_id="com.apple.voice.compact.en-US.Karen")]
        assert choose_voice(voices).name == "Karen"

    def test_custom_priority(self):
        voices = [_voice("Samantha", ["en-US"]), _voice("Daniel", ["en-GB"])]
        assert choose_voice(voices, priority=["Daniel"]).name == "Daniel"


class TestSpeaker:
    def test_provider(self):
        assert Speaker(MagicMock(), MagicMock(), MagicMock()).provider == "elevenlabs"
        assert Speaker(None, MagicMock(), MagicMock()).provider == "pyttsx3"

    def test_plays_elevenlabs_audio(self):
        client, player, local = MagicMock(), MagicMock(), MagicMock()
        client.synthesize.return_value = b"mp3"

        Speaker(client, player, local).speak("Hello")

        player.play.assert_called_once_with(b"mp3")
        local.speak.assert_not_called()

    def test_falls_back_to_local_voice(self):
        client, player, local = MagicMock(), MagicMock(), MagicMock()
        client.synthesize.side_effect = SpeechSynthesisError("TTS failed")

        Speaker(client, player, local).speak("Hello")

        player.play.assert_not_called()
        local.speak.assert_called_once_with("Hello")

    def test_without_client(self):
        player, local = MagicMock(), MagicMock()
        Speaker(None, player, local).speak("Hello")
        local.speak.assert_called_once_with("Hello")

    def test_blank_text_is_silent(self):
        client, player, local = MagicMock(), MagicMock(), MagicMock()
        Speaker(client, player, local).speak("  ")
        client.synthesize.assert_not_called()
        local.speak.assert_not_called()

    def test_stop_during_synthesis_skips_playback(self):
        client, player, local = MagicMock(), MagicMock(), MagicMock()
        speaker = Speaker(client, player, local)

        def synthesize(text):
            speaker.stop()
            return b"mp3"

        client.synthesize.side_effect = synthesize
        speaker.speak("Hello")

        player.play.assert_not_called()
        local.speak.assert_not_called()

    def test_stop(self):
        player, local = MagicMock(), MagicMock()
        Speaker(None, player, local).stop()
        player.stop.assert_called_once()
        local.stop.assert_called_once()

    def test_stop_before_speak_holds_until_resume(self):
        client, player, local = MagicMock(), MagicMock(), MagicMock()
        client.synthesize.return_value = b"mp3"
        speaker = Speaker(client, player, local)

        speaker.stop()
        speaker.speak("Hello")
        client.synthesize.assert_not_called()
        local.speak.assert_not_called()

        speaker.resume()
        player.resume.assert_called_once()
        speaker.speak("Hello")
        player.play.assert_called_once_with(b"mp3")


def _segment():
    return SimpleNamespace(
        get_array_of_samples=lambda: [0, 16384],
        sample_width=2,
        channels=1,
        frame_rate=22050,
    )


class TestAudioPlayer:
    def test_plays_decoded_audio(self):
        sd, pydub = MagicMock(), MagicMock()
        pydub.AudioSegment.from_file.return_value = _segment()

        with patch.dict(sys.modules, {"sounddevice": sd, "pydub": pydub}):
            AudioPlayer().play(b"mp3")

        data, rate = sd.play.call_args[0]
        assert rate == 22050
        assert data.tolist() == [0.0, 0.5]
        sd.wait.assert_called_once()

    def test_stop_while_decoding_skips_playback(self):
        sd, pydub = MagicMock(), MagicMock()
        player = AudioPlayer()

        def decode(*args, **kwargs):
            player.stop()
            return _segment()

        pydub.AudioSegment.from_file.side_effect = decode
        with patch.dict(sys.modules, {"sounddevice": sd, "pydub": pydub}):
            player.play(b"mp3")

        sd.play.assert_not_called()

    def test_resume_after_stop(self):
        sd, pydub = MagicMock(), MagicMock()
        pydub.AudioSegment.from_file.return_value = _segment()
        player = AudioPlayer()

        player.stop()
        player.resume()
        with patch.dict(sys.modules, {"sounddevice": sd, "pydub": pydub}):
            player.play(b"mp3")

        sd.play.assert_called_once()
