"""Events crossing the UI boundary."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from .session import ErrorInfo, SessionState, TranscriptResult


@dataclass(frozen=True)
class ProgressEvent:
    """Processing progress, 0-100."""
    progress: int
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class CompletionEvent:
    """Terminal success: the transcript, possibly with a summary or a summary error."""
    result: TranscriptResult
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure."""
    error: ErrorInfo
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class StateChangedEvent:
    """Published by the state machine after every accepted transition."""
    previous: SessionState
    current: SessionState
    timestamp: datetime = field(default_factory=datetime.now)


SessionEvent = Union[ProgressEvent, CompletionEvent, ErrorEvent]
TERMINAL_EVENT_TYPES = (CompletionEvent, ErrorEvent)
