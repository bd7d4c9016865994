"""Session state models: the single value the UI renders from."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..errors import ErrorKind
from .summary import Summary
from .transcription import Transcript


class SessionStatus(Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    DISPLAYING = "DISPLAYING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ErrorInfo:
    """User-visible failure description."""
    kind: ErrorKind
    message: str
    details: Optional[str] = None
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_exception(cls, error: BaseException, kind: Optional[ErrorKind] = None,
                       message: Optional[str] = None) -> "ErrorInfo":
        """Build an ErrorInfo, taking the kind from the exception when it has one."""
        resolved_kind = kind or getattr(error, "kind", ErrorKind.RUNTIME)
        return cls(
            kind=resolved_kind,
            message=message or str(error) or type(error).__name__,
            details=repr(error),
            cause=error,
        )


@dataclass(frozen=True)
class TranscriptResult:
    """A finished run: the transcript plus its summary or the reason it has none."""
    transcript: Transcript
    transcript_path: Path
    summary: Optional[Summary] = None
    summary_path: Optional[Path] = None
    summary_error: Optional[str] = None
    completed_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ArtifactPair:
    """A transcript file and the summary file sharing its timestamp prefix."""
    prefix: str
    transcript_path: Path
    summary_path: Optional[Path] = None


@dataclass(frozen=True)
class IdleState:
    status = SessionStatus.IDLE


@dataclass(frozen=True)
class RecordingState:
    duration: int = 0
    status = SessionStatus.RECORDING


@dataclass(frozen=True)
class ProcessingState:
    progress: int = 0
    message: str = "Preparing..."
    status = SessionStatus.PROCESSING


@dataclass(frozen=True)
class DisplayingState:
    result: TranscriptResult
    status = SessionStatus.DISPLAYING


@dataclass(frozen=True)
class ErrorState:
    error: ErrorInfo
    status = SessionStatus.ERROR


SessionState = Union[IdleState, RecordingState, ProcessingState, DisplayingState, ErrorState]
