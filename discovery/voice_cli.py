"""
Voice CLI for the 11-8 AI discovery agent.

Run a spoken discovery session from the command line.
"""

import argparse
import asyncio
import logging
import sys
import threading
import uuid

from .config import AppConfig
from .errors import SpeechRecognitionUnavailableError
from .reasoning import DiscoveryChatService
from .reasoning.models import ConversationStage
from .voice import (
    AgentState,
    AudioPlayer,
    ElevenLabsClient,
    LocalVoice,
    Speaker,
    SpeechToText,
    VoiceConfig,
    VoiceTurnController,
    WhisperRecognizer,
)
from .voice.session import AGENT
from .wizard import SessionStore

UNSUPPORTED_MESSAGE = (
    "Voice not supported on this machine.\n"
    "Voice sessions need a working microphone and the faster-whisper engine.\n"
    "Install with: pip install faster-whisper sounddevice"
)


def print_header():
    """Print CLI header."""
    print("""
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║     11-8 AI - Voice Discovery Session                         ║
║                                                               ║
║     Talk about your business - the agent listens and maps     ║
║     where automation can save you time                        ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """)


def build_controller(
    app_config: AppConfig,
    voice_config: VoiceConfig,
    business_name: str,
    notes: str = None,
    session_id: str = None,
    on_change=None,
) -> VoiceTurnController:
    """Wire the real recognizer, speaker and reasoning service together."""
    stt = SpeechToText(
        model_size=voice_config.whisper_model,
        language=voice_config.language.split("-")[0],
    )
    client = None
    if app_config.tts_configured:
        client = ElevenLabsClient(
            api_key=app_config.elevenlabs_api_key,
            voice_id=app_config.elevenlabs_voice,
            model_id=app_config.elevenlabs_model,
        )
    speaker = Speaker(
        client,
        AudioPlayer(),
        LocalVoice(priority=voice_config.voice_priority, rate=voice_config.speech_rate),
    )
    service = DiscoveryChatService.from_app_config(app_config)
    return VoiceTurnController(
        reasoner=service,
        speaker=speaker,
        recognizer_factory=lambda: WhisperRecognizer(stt),
        business_name=business_name,
        notes=notes,
        session_id=session_id,
        store=SessionStore(app_config.data_dir),
        config=voice_config,
        is_supported=WhisperRecognizer.is_supported,
        on_change=on_change,
    )


def print_update(event: str, controller: VoiceTurnController):
    """Console view of the conversation."""
    if event == "transcript":
        entry = controller.transcript[-1]
        speaker = "Agent" if entry.role == AGENT else "You"
        print(f"\n{speaker}: {entry.text}")
    elif event == "interim" and controller.interim_text:
        print(f"   ... {controller.interim_text}", end="\r")
    elif event == "state":
        if controller.state == AgentState.LISTENING:
            print("\n🎤 Listening...")
        elif controller.state == AgentState.PROCESSING:
            print("   Thinking...")
    elif event == "insights":
        insights = controller.insights
        print(
            f"   [{insights.stage_label} {insights.stage.index + 1}/{len(ConversationStage)}] "
            f"{len(insights.pain_points)} pain points, "
            f"{insights.total_hours_per_week:g}h/wk, "
            f"~${insights.estimated_annual_cost:,.0f}/yr"
        )
    elif event == "mute":
        print("   Muted" if controller.muted else "   Unmuted")


def read_commands(controller: VoiceTurnController, loop: asyncio.AbstractEventLoop):
    """Keyboard commands: m = mute/unmute, r = reset, q = quit."""
    for line in sys.stdin:
        command = line.strip().lower()
        if command == "m":
            loop.call_soon_threadsafe(controller.toggle_mute)
        elif command == "r":
            loop.call_soon_threadsafe(controller.reset)
            return
        elif command == "q":
            loop.call_soon_threadsafe(controller.stop)
            return


async def run_session(controller: VoiceTurnController):
    await controller.start()
    threading.Thread(
        target=read_commands,
        args=(controller, asyncio.get_running_loop()),
        name="voice-commands",
        daemon=True,
    ).start()
    await controller.wait_closed()
    await controller.aclose()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="11-8 AI Voice Discovery Session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a voice session
  python -m discovery.voice_cli --business "Acme Plumbing"

  # Add pre-session notes and use a larger Whisper model
  python -m discovery.voice_cli --business "Acme Plumbing" --notes "Owner runs 3 vans" --model small

  # Start muted (text only)
  python -m discovery.voice_cli --business "Acme Plumbing" --muted
        """
    )
    parser.add_argument("--business", "-b", required=True, help="Business name")
    parser.add_argument("--notes", "-n", default=None, help="Pre-session notes for the agent")
    parser.add_argument("--session", "-s", default=None, help="Session id (default: new)")
    parser.add_argument(
        "--model", "-m",
        default="base",
        choices=SpeechToText.AVAILABLE_MODELS,
        help="Whisper model size (default: base)",
    )
    parser.add_argument("--muted", action="store_true", help="Start with speech output muted")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print_header()

    app_config = AppConfig.from_env()
    voice_config = VoiceConfig(whisper_model=args.model)
    session_id = args.session or str(uuid.uuid4())

    print(" Configuration:")
    print(f"   Business: {args.business}")
    print(f"   Session: {session_id}")
    print(f"   Whisper Model: {args.model}")
    print(f"   Voice: {'ElevenLabs' if app_config.tts_configured else 'local (pyttsx3)'}")
    print()
    print("Commands: m + Enter = mute/unmute, r + Enter = reset, q + Enter = quit")
    print("=" * 60)

    controller = build_controller(
        app_config, voice_config, args.business, args.notes, session_id,
        on_change=print_update,
    )
    if args.muted:
        controller.toggle_mute()

    try:
        asyncio.run(run_session(controller))
    except SpeechRecognitionUnavailableError:
        print(UNSUPPORTED_MESSAGE)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n⏹️ Session interrupted by user")
        sys.exit(0)

    if controller.insights.agreed_to_terms:
        print("\n✅ Terms agreed - session complete")


if __name__ == "__main__":
    main()
