"""Data models for the OpenNotes application."""

from .audio import AudioStats, BinaryArtifact
from .transcription import (
    JobStatus,
    JobStatusResponse,
    Transcript,
    TranscriptionConfig,
    TranscriptionJob,
    Utterance,
    Word,
)
from .summary import Summary
from .session import (
    ArtifactPair,
    DisplayingState,
    ErrorInfo,
    ErrorState,
    IdleState,
    ProcessingState,
    RecordingState,
    SessionState,
    SessionStatus,
    TranscriptResult,
)
from .events import (
    CompletionEvent,
    ErrorEvent,
    ProgressEvent,
    SessionEvent,
    StateChangedEvent,
)

__all__ = [
    "AudioStats",
    "BinaryArtifact",
    # Transcription
    "JobStatus",
    "JobStatusResponse",
    "Transcript",
    "TranscriptionConfig",
    "TranscriptionJob",
    "Utterance",
    "Word",
    "Summary",
    # Session state
    "ArtifactPair",
    "DisplayingState",
    "ErrorInfo",
    "ErrorState",
    "IdleState",
    "ProcessingState",
    "RecordingState",
    "SessionState",
    "SessionStatus",
    "TranscriptResult",
    # Events
    "CompletionEvent",
    "ErrorEvent",
    "ProgressEvent",
    "SessionEvent",
    "StateChangedEvent",
]
