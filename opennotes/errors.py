"""Exception hierarchy for OpenNotes.

Every error carries a coarse ``kind`` so the presentation layer can offer the
right remediation (grant a permission, retry, check an API key).
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Coarse classification of a user-visible failure."""
    PERMISSION = "permission"
    RUNTIME = "runtime"
    API = "api"


class SourceKind(Enum):
    """Which capture source a track belongs to."""
    MIC = "mic"
    SYSTEM = "system"


class OpenNotesError(Exception):
    """Base class for all OpenNotes errors."""
    kind = ErrorKind.RUNTIME


class ConfigurationError(OpenNotesError):
    """Missing credentials or invalid configuration."""


# Capture

class AudioCaptureError(OpenNotesError):
    """A capture source could not be opened."""
    kind = ErrorKind.PERMISSION


class NoAudioSourceError(AudioCaptureError):
    """Neither the microphone nor system audio could be acquired."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "No audio sources available. Please grant microphone permission "
               "or ensure system audio is accessible."
        )


class AudioInterruptedError(AudioCaptureError):
    """A track ended unexpectedly while recording."""
    kind = ErrorKind.RUNTIME

    def __init__(self, source: SourceKind, message: Optional[str] = None):
        self.source = source
        super().__init__(message or f"Audio source '{source.value}' stopped unexpectedly")


# Recording

class NoActiveRecordingError(OpenNotesError):
    """stop() was called without a prior start()."""

    def __init__(self, message: str = "No active recording"):
        super().__init__(message)


class RecordingInProgressError(OpenNotesError):
    """start() was called while a session is already recording."""

    def __init__(self, message: str = "Recording already in progress"):
        super().__init__(message)


class EncodingError(OpenNotesError):
    """Buffered segments could not be turned into a finished artifact."""


# Transcription

class TranscriptionError(OpenNotesError):
    kind = ErrorKind.API


class TranscriptionTransportError(TranscriptionError):
    """The provider could not be reached or answered with a transport error."""


class UploadError(TranscriptionTransportError):
    """The audio artifact could not be uploaded."""


class TranscriptionFailedError(TranscriptionError):
    """The provider reported the job as failed."""

    def __init__(self, provider_error: Optional[str]):
        self.provider_error = provider_error or "Transcription failed"
        super().__init__(self.provider_error)


class TranscriptionTimeoutError(TranscriptionError):
    """The poll limit was reached before the job finished."""

    def __init__(self, polls: int, interval: float):
        self.polls = polls
        self.interval = interval
        minutes = polls * interval / 60
        super().__init__(f"Transcription timeout: exceeded {minutes:g} minutes ({polls} polls)")


# Summarization

class SummarizationError(OpenNotesError):
    kind = ErrorKind.API


class SummarizationProviderError(SummarizationError):
    """Non-success answer from the summarization provider."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RateLimitError(SummarizationProviderError):
    """The provider asked us to slow down (HTTP 429)."""


class MalformedResponseError(SummarizationError):
    """The provider answered, but not with a valid summary object."""


class SummarizationFailedError(SummarizationError):
    """No summary could be produced; wraps the last underlying error."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        self.attempts = attempts
        self.last_error = last_error
        detail = str(last_error) if last_error else "unknown error"
        super().__init__(f"Summarization failed after {attempts} attempt(s): {detail}")
