"""
Text-to-Speech with ElevenLabs (primary) and pyttsx3 (offline fallback).

ElevenLabs returns MP3 audio that is decoded with pydub and played through
sounddevice so playback can be stopped mid-sentence. Any ElevenLabs
failure falls back to an OS-native pyttsx3 voice.
"""

import io
import logging
import re
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import requests

from ..config import DEFAULT_ELEVENLABS_MODEL, DEFAULT_ELEVENLABS_VOICE
from ..errors import SpeechSynthesisError

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"

# Best sounding local voices first
DEFAULT_VOICE_PRIORITY = (
    "Ava (Enhanced)",
    "Allison (Enhanced)",
    "Samantha (Enhanced)",
    "Susan (Enhanced)",
    "Victoria (Enhanced)",
    "Ava",
    "Allison",
    "Samantha",
    "Google US English",
    "Google UK English Female",
)


@dataclass
class VoiceSettings:
    """ElevenLabs voice settings."""
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.3
    use_speaker_boost: bool = True

    def to_dict(self) -> dict:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


# ── ElevenLabs ──────────────────────────────────────────────────


class ElevenLabsClient:
    """Thin client for the ElevenLabs text-to-speech endpoint."""

    def __init__(
        self,
        api_key: str,
        voice_id: str = DEFAULT_ELEVENLABS_VOICE,
        model_id: str = DEFAULT_ELEVENLABS_MODEL,
        settings: Optional[VoiceSettings] = None,
        timeout: int = 30,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.settings = settings or VoiceSettings()
        self.timeout = timeout

    def synthesize(self, text: str) -> bytes:
        """
        Generate MP3 audio for text.

        Args:
            text: Text to synthesize

        Returns:
            MP3 audio bytes

        Raises:
            ValueError: If text is blank
            SpeechSynthesisError: On network failure or a non-2xx response
        """
        if not text or not text.strip():
            raise ValueError("No text provided")

        try:
            response = requests.post(
                f"{ELEVENLABS_API_URL}/{self.voice_id}",
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": self.settings.to_dict(),
                },
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "audio/mpeg",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SpeechSynthesisError(f"TTS failed: {e}") from e

        if not response.ok:
            logger.error("ElevenLabs error %s: %s", response.status_code, response.text[:200])
            raise SpeechSynthesisError("TTS failed")
        return response.content


# ── Playback ────────────────────────────────────────────────────


class AudioPlayer:
    """Plays MP3 bytes through the default output device."""

    def __init__(self):
        self._active = False
        self._stopped = False
        self._lock = threading.Lock()

    def resume(self):
        """Allow playback again after stop()."""
        with self._lock:
            self._stopped = False

    def play(self, audio_bytes: bytes):
        """Play audio and block until it finishes or stop() is called."""
        import sounddevice as sd
        from pydub import AudioSegment

        segment = AudioSegment.from_file(io.BytesIO(audio_bytes), format="mp3")
        data = np.array(segment.get_array_of_samples(), dtype=np.float32)
        data /= float(1 << (8 * segment.sample_width - 1))
        if segment.channels > 1:
            data = data.reshape((-1, segment.channels))

        # A stop() that lands while decoding must still win
        with self._lock:
            if self._stopped:
                return
            sd.play(data, segment.frame_rate)
            self._active = True
        try:
            sd.wait()
        finally:
            self._active = False

    def stop(self):
        with self._lock:
            self._stopped = True
            if self._active:
                import sounddevice as sd
                sd.stop()


# ── pyttsx3 fallback ────────────────────────────────────────────


def _voice_languages(voice) -> List[str]:
    """Normalized language tags for a pyttsx3 voice, e.g. ['en-us']."""
    tags = []
    for lang in getattr(voice, "languages", None) or []:
        if isinstance(lang, bytes):
            lang = lang.decode("utf-8", errors="ignore")
        lang = re.sub(r"^[^A-Za-z]+", "", str(lang))
        tags.append(lang.replace("_", "-").lower())
    if not tags:
        match = re.search(r"\ben[-_][A-Za-z]{2}\b", getattr(voice, "id", "") or "")
        if match:
            tags.append(match.group(0).replace("_", "-").lower())
    return tags


def choose_voice(voices: Sequence, priority: Sequence[str] = DEFAULT_VOICE_PRIORITY):
    """
    Pick the local voice to speak with.

    The first priority name matching an English voice wins; otherwise any
    en-US voice; otherwise None (engine default).
    """
    english = [v for v in voices if any(t.startswith("en") for t in _voice_languages(v))]
    for name in priority:
        for voice in english:
            if voice.name == name:
                return voice
    for voice in english:
        if "en-us" in _voice_languages(voice):
            return voice
    return None


class LocalVoice:
    """OS-native speech through pyttsx3."""

    def __init__(self, priority: Sequence[str] = DEFAULT_VOICE_PRIORITY, rate: int = 175):
        self.priority = tuple(priority)
        self.rate = rate
        self._engine = None

    def _create_engine(self):
        import pyttsx3

        engine = pyttsx3.init()
        engine.setProperty("rate", self.rate)
        voice = choose_voice(engine.getProperty("voices"), self.priority)
        if voice is not None:
            engine.setProperty("voice", voice.id)
        logger.info("Using voice: %s", voice.name if voice else "system default")
        return engine

    def speak(self, text: str):
        """Speak text and block until done."""
        self._engine = self._create_engine()
        try:
            self._engine.say(text)
            self._engine.runAndWait()
        finally:
            self._engine = None

    def stop(self):
        if self._engine is not None:
            self._engine.stop()


# ── Public API ──────────────────────────────────────────────────


class Speaker:
    """
    Speaks agent replies: ElevenLabs audio when configured, pyttsx3 when not
    configured or when ElevenLabs fails.

    Usage:
        speaker = Speaker(ElevenLabsClient(api_key), AudioPlayer(), LocalVoice())
        speaker.speak("Hi there")
    """

    def __init__(
        self,
        client: Optional[ElevenLabsClient],
        player: AudioPlayer,
        local_voice: LocalVoice,
    ):
        self.client = client
        self.player = player
        self.local_voice = local_voice
        self._stopped = False

    @property
    def provider(self) -> str:
        return "elevenlabs" if self.client else "pyttsx3"

    def resume(self):
        """Clear a previous stop() before the next reply."""
        self._stopped = False
        self.player.resume()

    def speak(self, text: str):
        """Speak text. Blocks until playback completes or stop() is called."""
        if self._stopped or not text or not text.strip():
            return
        if self.client is not None:
            try:
                audio = self.client.synthesize(text)
                if not self._stopped:
                    self.player.play(audio)
                return
            except Exception as e:
                logger.warning("ElevenLabs TTS failed, using local voice: %s", e)
        if not self._stopped:
            self.local_voice.speak(text)

    def stop(self):
        self._stopped = True
        self.player.stop()
        self.local_voice.stop()
