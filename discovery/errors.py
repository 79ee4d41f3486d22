"""
Exception hierarchy for the discovery wizard and voice session.

Routes in web_app.py turn any DiscoveryError into a JSON error payload.
"""


class DiscoveryError(Exception):
    """Base class for all discovery errors."""

    status_code = 400


class StepGuardError(DiscoveryError):
    """Raised when the current wizard step is not complete enough to advance."""


class AgreementError(DiscoveryError):
    """Raised when the agreement cannot be confirmed."""


class SessionNotFoundError(DiscoveryError):
    """Raised when no stored session matches an id."""

    status_code = 404


class ReasoningServiceError(DiscoveryError):
    """The language model call failed or returned nothing usable."""

    status_code = 500


class SpeechSynthesisError(DiscoveryError):
    """The remote text-to-speech service refused or failed a request."""

    status_code = 500


class SpeechRecognitionUnavailableError(DiscoveryError):
    """No speech recognition capability on this machine."""
