"""
Voice discovery session.

Components:
- WhisperRecognizer: microphone capture + faster-whisper transcription
- Speaker: ElevenLabs speech with a pyttsx3 fallback
- VoiceTurnController: listen / think / speak loop
"""

from .session import TranscriptEntry, VoiceSessionRecord
from .speech_to_text import (
    RecognitionEvent,
    RecognitionEventType,
    SpeechToText,
    WhisperRecognizer,
)
from .text_to_speech import AudioPlayer, ElevenLabsClient, LocalVoice, Speaker
from .turn_controller import AgentState, VoiceConfig, VoiceTurnController

__all__ = [
    "TranscriptEntry",
    "VoiceSessionRecord",
    "RecognitionEvent",
    "RecognitionEventType",
    "SpeechToText",
    "WhisperRecognizer",
    "AudioPlayer",
    "ElevenLabsClient",
    "LocalVoice",
    "Speaker",
    "AgentState",
    "VoiceConfig",
    "VoiceTurnController",
]
