"""Transcription-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


class JobStatus(Enum):
    """Lifecycle of a remote transcription job."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class TranscriptionConfig:
    """Options sent along with a transcription job."""
    speaker_labels: bool = True
    multichannel: bool = True
    # One local user plus up to five remote participants
    min_speakers: int = 2
    max_speakers: int = 6


@dataclass(frozen=True)
class Word:
    text: str
    start_ms: int
    end_ms: int
    confidence: float
    speaker_id: Optional[str] = None
    channel: Optional[str] = None


@dataclass(frozen=True)
class Utterance:
    """A contiguous speech segment attributed to one speaker."""
    speaker_id: str
    text: str
    start_ms: int
    end_ms: int
    confidence: Optional[float] = None
    channel: Optional[str] = None


@dataclass(frozen=True)
class JobStatusResponse:
    """What a provider reports when asked about a job."""
    status: JobStatus
    text: Optional[str] = None
    confidence: Optional[float] = None
    duration_seconds: Optional[float] = None
    utterances: Optional[List[Utterance]] = None
    words: Optional[List[Word]] = None
    error: Optional[str] = None


@dataclass
class TranscriptionJob:
    """A submitted job, owned by the orchestrator while it polls."""
    id: str
    source_url: str
    status: JobStatus = JobStatus.QUEUED
    poll_count: int = 0


@dataclass(frozen=True)
class Transcript:
    """Immutable result of a completed transcription job."""
    id: str
    text: str
    confidence: float
    duration_seconds: float
    utterances: List[Utterance] = field(default_factory=list)
    words: List[Word] = field(default_factory=list)

    @property
    def speaker_ids(self) -> List[str]:
        """Distinct speakers in order of first appearance."""
        seen = []
        for utterance in self.utterances:
            if utterance.speaker_id not in seen:
                seen.append(utterance.speaker_id)
        return seen
