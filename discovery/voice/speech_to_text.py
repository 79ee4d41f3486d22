"""
Speech-to-Text using faster-whisper.

Provides local, offline speech recognition:
- SpeechToText: transcribe a block of audio
- WhisperRecognizer: continuous microphone recognition that reports
  interim and final transcripts as RecognitionEvents
"""

import importlib.util
import logging
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionResult:
    """Result from speech-to-text transcription."""
    text: str
    language: str = "en"
    confidence: float = 0.0
    duration: float = 0.0


class SpeechToText:
    """
    Speech-to-Text engine using faster-whisper.

    Models (smallest to largest): tiny, base, small, medium, large-v3.
    The model is loaded on first use.
    """

    AVAILABLE_MODELS = ["tiny", "base", "small", "medium", "large-v3"]

    def __init__(
        self,
        model_size: str = "base",
        device: str = "cpu",
        compute_type: str = "int8",
        language: str = "en",
    ):
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self._model = None
        self._lock = threading.Lock()

    def _load_model(self):
        if self._model is None:
            from faster_whisper import WhisperModel

            logger.info("Loading Whisper model '%s' on %s", self.model_size, self.device)
            self._model = WhisperModel(
                self.model_size,
                device=self.device,
                compute_type=self.compute_type,
            )

    def transcribe(self, audio_data: np.ndarray, language: Optional[str] = None) -> TranscriptionResult:
        """
        Transcribe audio samples.

        Args:
            audio_data: Mono samples at 16kHz (float32 in [-1, 1] or int16)
            language: Language code (defaults to the engine language)

        Returns:
            TranscriptionResult with the joined segment text
        """
        if audio_data.dtype != np.float32:
            audio_data = audio_data.astype(np.float32)
        if audio_data.size and np.abs(audio_data).max() > 1.0:
            audio_data = audio_data / 32768.0

        with self._lock:
            self._load_model()
            segments, info = self._model.transcribe(
                audio_data,
                language=language or self.language,
                beam_size=5,
                vad_filter=True,
                vad_parameters=dict(min_silence_duration_ms=500),
            )
            text = " ".join(segment.text.strip() for segment in segments).strip()

        return TranscriptionResult(
            text=text,
            language=info.language,
            confidence=info.language_probability,
            duration=info.duration,
        )


# ── Continuous recognition ──────────────────────────────────────


class RecognitionEventType(str, Enum):
    INTERIM = "interim"
    FINAL = "final"
    ERROR = "error"
    END = "end"


@dataclass(frozen=True)
class RecognitionEvent:
    """One callback from a recognition stream."""
    type: RecognitionEventType
    text: str = ""
    error: Optional[str] = None

    @classmethod
    def interim(cls, text: str) -> "RecognitionEvent":
        return cls(RecognitionEventType.INTERIM, text=text)

    @classmethod
    def final(cls, text: str) -> "RecognitionEvent":
        return cls(RecognitionEventType.FINAL, text=text)

    @classmethod
    def failure(cls, error: str) -> "RecognitionEvent":
        return cls(RecognitionEventType.ERROR, error=error)

    @classmethod
    def end(cls) -> "RecognitionEvent":
        return cls(RecognitionEventType.END)


def microphone_available() -> bool:
    """True if an input device exists."""
    try:
        import sounddevice as sd
        devices = sd.query_devices()
    except Exception:
        return False
    return any(d["max_input_channels"] > 0 for d in devices)


@dataclass
class RecognizerSettings:
    """Segmentation thresholds for WhisperRecognizer."""
    sample_rate: int = 16000
    block_size: int = 1024
    silence_threshold: float = 0.01  # RMS
    endpoint_silence: float = 0.6  # seconds of quiet that finalize a phrase
    interim_interval: float = 1.0  # seconds between interim transcriptions
    no_speech_timeout: float = 8.0


class WhisperRecognizer:
    """
    Continuous microphone recognition.

    Captures audio with sounddevice on a worker thread, splits it into
    phrases on short silences and transcribes each phrase with
    faster-whisper. Each start() runs one stream; the stream reports
    through the callback until it ends:

    - INTERIM while a phrase is still being spoken
    - FINAL once the phrase is complete
    - ERROR("no-speech") after a long stretch with nothing said
    - ERROR("aborted") when abort() tore it down
    - END last, always

    The callback runs on the worker thread.
    """

    def __init__(
        self,
        stt: SpeechToText,
        settings: Optional[RecognizerSettings] = None,
    ):
        self.stt = stt
        self.settings = settings or RecognizerSettings()
        self._stop = threading.Event()
        self._aborted = False
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def is_supported() -> bool:
        return importlib.util.find_spec("faster_whisper") is not None and microphone_available()

    def start(self, on_event: Callable[[RecognitionEvent], None]):
        if self._thread is not None:
            raise RuntimeError("Recognizer already started")
        self._thread = threading.Thread(
            target=self._run, args=(on_event,), name="whisper-recognizer", daemon=True
        )
        self._thread.start()

    def stop(self):
        self._stop.set()

    def abort(self):
        self._aborted = True
        self._stop.set()

    def _run(self, emit: Callable[[RecognitionEvent], None]):
        import sounddevice as sd

        blocks: "queue.Queue[np.ndarray]" = queue.Queue()

        def callback(indata, frames, time_info, status):
            if status:
                logger.debug("Audio status: %s", status)
            blocks.put(indata.copy().flatten())

        try:
            with sd.InputStream(
                samplerate=self.settings.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.settings.block_size,
                callback=callback,
            ):
                self._listen(blocks, emit)
        except Exception as e:
            logger.warning("Recognition stream failed: %s", e)
            emit(RecognitionEvent.failure("audio-capture"))
        finally:
            if self._aborted:
                emit(RecognitionEvent.failure("aborted"))
            emit(RecognitionEvent.end())

    def _listen(self, blocks: "queue.Queue[np.ndarray]", emit: Callable[[RecognitionEvent], None]):
        s = self.settings
        block_seconds = s.block_size / s.sample_rate
        phrase: List[np.ndarray] = []
        quiet = 0.0
        idle = 0.0
        last_interim = time.monotonic()

        while not self._stop.is_set():
            try:
                block = blocks.get(timeout=0.1)
            except queue.Empty:
                continue

            rms = float(np.sqrt(np.mean(block ** 2)))
            if rms > s.silence_threshold:
                if not phrase:
                    last_interim = time.monotonic()
                phrase.append(block)
                quiet = 0.0
                idle = 0.0
                if time.monotonic() - last_interim >= s.interim_interval:
                    last_interim = time.monotonic()
                    text = self.stt.transcribe(np.concatenate(phrase)).text
                    if text and not self._stop.is_set():
                        emit(RecognitionEvent.interim(text))
            elif phrase:
                phrase.append(block)
                quiet += block_seconds
                if quiet >= s.endpoint_silence:
                    text = self.stt.transcribe(np.concatenate(phrase)).text
                    phrase = []
                    quiet = 0.0
                    if text and not self._stop.is_set():
                        emit(RecognitionEvent.final(text))
            else:
                idle += block_seconds
                if idle >= s.no_speech_timeout:
                    emit(RecognitionEvent.failure("no-speech"))
                    return
