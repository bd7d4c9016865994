"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    channels: int
    total_chunks: int
    total_frames: int


@dataclass(frozen=True)
class BinaryArtifact:
    """A finished, encoded recording."""
    data: bytes
    mime_type: str
    extension: str  # without the dot, e.g. "ogg"
    sample_rate: int
    channels: int
    duration_seconds: float
