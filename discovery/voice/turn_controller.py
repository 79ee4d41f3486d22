"""
Voice Turn Controller - the listen / think / speak loop.

One controller runs one voice discovery call:

    idle -> processing -> speaking -> listening -> processing -> ... -> idle

The controller is the only owner of its state. Recognizer callbacks arrive
from a worker thread and are handed to the event loop with
call_soon_threadsafe; blocking work (the reasoning call and speech output)
runs in the default executor. Every other mutation happens on the loop.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence, Tuple

from ..errors import ReasoningServiceError, SpeechRecognitionUnavailableError
from ..reasoning.models import DEFAULT_INSIGHTS, AgentReply, ChatMessage, InsightData
from ..wizard.store import SessionStore
from .session import AGENT, CLIENT, TranscriptEntry, VoiceSessionRecord
from .speech_to_text import RecognitionEvent, RecognitionEventType
from .text_to_speech import DEFAULT_VOICE_PRIORITY

logger = logging.getLogger(__name__)


class AgentState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"


@dataclass
class VoiceConfig:
    """Timing and voice settings for a voice session (seconds)."""
    silence_delay: float = 1.5  # quiet after a final fragment before the turn is sent
    settle_delay: float = 0.4  # pause before listening again after a reply
    muted_delay: float = 0.3
    error_restart_delay: float = 0.5
    end_restart_delay: float = 0.3
    language: str = "en-US"

    # Local fallback voice
    voice_priority: Tuple[str, ...] = DEFAULT_VOICE_PRIORITY
    speech_rate: int = 175

    # Speech-to-text
    whisper_model: str = "base"


# ── Collaborators ───────────────────────────────────────────────


class Recognizer(Protocol):
    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None: ...

    def abort(self) -> None: ...


class Reasoner(Protocol):
    def respond(
        self,
        messages: Sequence[ChatMessage],
        business_name: str,
        notes: Optional[str] = None,
    ) -> AgentReply: ...


class SpeechOutput(Protocol):
    def resume(self) -> None: ...

    def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


# ── Controller ──────────────────────────────────────────────────


class VoiceTurnController:
    """
    Drives a spoken discovery conversation.

    Usage:
        controller = VoiceTurnController(service, speaker, recognizer_factory,
                                         business_name="Acme Plumbing")
        await controller.start()
        await controller.wait_closed()
    """

    def __init__(
        self,
        reasoner: Reasoner,
        speaker: SpeechOutput,
        recognizer_factory: Callable[[], Recognizer],
        business_name: str,
        notes: Optional[str] = None,
        session_id: Optional[str] = None,
        store: Optional[SessionStore] = None,
        config: Optional[VoiceConfig] = None,
        is_supported: Callable[[], bool] = lambda: True,
        on_change: Optional[Callable[[str, "VoiceTurnController"], None]] = None,
    ):
        self.reasoner = reasoner
        self.speaker = speaker
        self.recognizer_factory = recognizer_factory
        self.business_name = business_name
        self.notes = notes
        self.session_id = session_id
        self.store = store
        self.config = config or VoiceConfig()
        self.is_supported = is_supported
        self.on_change = on_change

        self._state = AgentState.IDLE
        self._transcript: Tuple[TranscriptEntry, ...] = ()
        self._messages: Tuple[ChatMessage, ...] = ()
        self._insights: InsightData = DEFAULT_INSIGHTS
        self._interim_text = ""
        self._started = False
        self._muted = False

        self._playing = False
        self._pending_text = ""
        self._recognizer: Optional[Recognizer] = None
        self._generation = 0  # bumps on every recognizer teardown
        self._epoch = 0  # bumps on reset
        self._silence_timer: Optional[asyncio.TimerHandle] = None
        self._restart_timer: Optional[asyncio.TimerHandle] = None
        self._tasks = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed = asyncio.Event()

    # ── Read-only view ──────────────────────────────────────────

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def transcript(self) -> Tuple[TranscriptEntry, ...]:
        return self._transcript

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return self._messages

    @property
    def insights(self) -> InsightData:
        return self._insights

    @property
    def interim_text(self) -> str:
        return self._interim_text

    @property
    def started(self) -> bool:
        return self._started

    @property
    def muted(self) -> bool:
        return self._muted

    @property
    def record(self) -> VoiceSessionRecord:
        return VoiceSessionRecord(self._transcript, self._messages, self._insights)

    # ── Internal helpers ────────────────────────────────────────

    def _notify(self, event: str):
        if self.on_change is not None:
            self.on_change(event, self)

    def _set_state(self, state: AgentState):
        if state != self._state:
            logger.debug("Voice state %s -> %s", self._state.value, state.value)
            self._state = state
            self._notify("state")

    def _append_transcript(self, role: str, text: str):
        entry = TranscriptEntry(role=role, text=text)
        self._transcript = self._transcript + (entry,)
        self._notify("transcript")

    def _persist(self):
        if self.store is None or self.session_id is None or not self._transcript:
            return
        self.store.save_voice_session(self.session_id, self.record.to_dict())

    def _spawn(self, coro):
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_timer(self, handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def _schedule_listen(self, delay: float, after_turn: bool = False):
        self._cancel_timer(self._restart_timer)
        self._restart_timer = self._loop.call_later(delay, self.start_listening, after_turn)

    def _teardown_recognizer(self):
        self._generation += 1
        if self._recognizer is not None:
            try:
                self._recognizer.abort()
            except Exception as e:
                logger.debug("Recognizer abort failed: %s", e)
            self._recognizer = None

    # ── Session control ─────────────────────────────────────────

    async def start(self):
        """
        Open the conversation: the agent greets first.

        Raises:
            SpeechRecognitionUnavailableError: No usable microphone or
                recognition engine
        """
        if not self.is_supported():
            raise SpeechRecognitionUnavailableError(
                "Voice features need a microphone and the faster-whisper engine."
            )
        self._loop = asyncio.get_running_loop()
        self._closed.clear()
        self._started = True
        self._notify("started")
        self._spawn(self._call_agent("", self._messages))

    async def wait_closed(self):
        """Wait until the conversation ends (terms agreed) or is reset."""
        await self._closed.wait()

    def stop(self):
        """End the conversation, keeping the transcript and its stored copy."""
        self._epoch += 1
        self.speaker.stop()
        self._teardown_recognizer()
        self._cancel_timer(self._silence_timer)
        self._cancel_timer(self._restart_timer)
        self._silence_timer = None
        self._restart_timer = None
        self._interim_text = ""
        self._pending_text = ""
        self._playing = False
        self._set_state(AgentState.IDLE)
        self._closed.set()

    def reset(self):
        """Tear everything down and forget the conversation."""
        self.stop()
        self._transcript = ()
        self._messages = ()
        self._insights = DEFAULT_INSIGHTS
        self._started = False
        if self.store is not None and self.session_id is not None:
            self.store.remove_voice_session(self.session_id)
        self._notify("reset")

    def toggle_mute(self) -> bool:
        """Flip mute; muting cuts off any reply being spoken."""
        self._muted = not self._muted
        if self._muted:
            self.speaker.stop()
        self._notify("mute")
        return self._muted

    async def aclose(self):
        """Stop and wait for in-flight turns to finish."""
        self.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ── Listening ───────────────────────────────────────────────

    def start_listening(self, after_turn: bool = False):
        """
        Open a new recognition stream.

        Outside the post-turn relisten (after_turn) nothing opens while a
        turn is being processed or spoken.
        """
        self._restart_timer = None
        if self._playing:
            return
        if not after_turn and self._state in (AgentState.PROCESSING, AgentState.SPEAKING):
            return

        self._teardown_recognizer()
        generation = self._generation
        recognizer = self.recognizer_factory()
        self._recognizer = recognizer
        self._set_state(AgentState.LISTENING)

        loop = self._loop

        def deliver(event: RecognitionEvent):
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(self._on_recognition, generation, event)

        try:
            recognizer.start(deliver)
        except Exception as e:
            logger.warning("Recognition start error: %s", e)

    def _on_recognition(self, generation: int, event: RecognitionEvent):
        if generation != self._generation:
            return  # stale stream

        if event.type == RecognitionEventType.INTERIM:
            if not self._playing and event.text:
                self._interim_text = event.text
                self._notify("interim")

        elif event.type == RecognitionEventType.FINAL:
            if self._playing or not event.text:
                return
            self._pending_text += " " + event.text
            self._interim_text = ""
            self._notify("interim")
            self._cancel_timer(self._silence_timer)
            self._silence_timer = self._loop.call_later(
                self.config.silence_delay, self._flush_utterance
            )

        elif event.type == RecognitionEventType.ERROR:
            if event.error == "aborted":
                return
            logger.warning("Speech recognition error: %s", event.error)
            self._recognizer = None
            if not self._playing and self._state == AgentState.LISTENING:
                self._schedule_listen(self.config.error_restart_delay)

        elif event.type == RecognitionEventType.END:
            if not self._playing and self._state == AgentState.LISTENING:
                self._schedule_listen(self.config.end_restart_delay)

    def _flush_utterance(self):
        self._silence_timer = None
        text = self._pending_text.strip()
        self._pending_text = ""
        if not text:
            return
        self._cancel_timer(self._restart_timer)
        self._restart_timer = None
        # Leave LISTENING first so the aborted stream's end event cannot restart it
        self._set_state(AgentState.PROCESSING)
        self._teardown_recognizer()
        self._spawn(self._call_agent(text, self._messages))

    # ── Processing ──────────────────────────────────────────────

    async def _call_agent(self, user_text: str, messages: Tuple[ChatMessage, ...]):
        epoch = self._epoch
        self._set_state(AgentState.PROCESSING)

        history = messages
        if user_text:
            history = messages + (ChatMessage(role="user", content=user_text),)
            self._messages = history
            self._append_transcript(CLIENT, user_text)
            self._persist()

        try:
            reply = await self._loop.run_in_executor(
                None, self.reasoner.respond, list(history), self.business_name, self.notes
            )
            if not reply.message:
                raise ReasoningServiceError("No message")
        except Exception as e:
            if epoch != self._epoch:
                return
            logger.error("Agent error: %s", e)
            self._schedule_listen(self.config.settle_delay, after_turn=True)
            return

        if epoch != self._epoch:
            return  # reset while the request was in flight

        self._insights = reply.insights
        self._messages = history + (ChatMessage(role="assistant", content=reply.message),)
        self._append_transcript(AGENT, reply.message)
        self._notify("insights")
        self._persist()

        await self._speak(reply.message)
        if epoch != self._epoch:
            return

        if not reply.insights.agreed_to_terms:
            self._schedule_listen(self.config.settle_delay, after_turn=True)
        else:
            self._set_state(AgentState.IDLE)
            self._closed.set()

    # ── Speaking ────────────────────────────────────────────────

    async def _speak(self, text: str):
        self._playing = True
        self._teardown_recognizer()
        self._set_state(AgentState.SPEAKING)

        if self._muted:
            self._playing = False
            await asyncio.sleep(self.config.muted_delay)
            return

        self.speaker.resume()
        try:
            await self._loop.run_in_executor(None, self.speaker.speak, text)
        except Exception as e:
            logger.warning("Speech output failed: %s", e)
        finally:
            self._playing = False
