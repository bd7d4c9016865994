"""Segment encoders used by the recorder.

Each encoder turns one flush interval of PCM frames into an encoded segment
and later joins all segments into one artifact. Ogg allows chained streams,
so its segments are complete files that concatenate cleanly; the WAV fallback
buffers raw PCM and writes the header once at the end.
"""

import io
import logging
import wave
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)

OPUS_SAMPLE_RATES = (8000, 12000, 16000, 24000, 48000)


@dataclass(frozen=True)
class EncodingFormat:
    container: str  # libsndfile major format, e.g. "OGG"
    subtype: str    # e.g. "OPUS"
    mime_type: str
    extension: str


ENCODING_PREFERENCES = (
    EncodingFormat("OGG", "OPUS", "audio/ogg;codecs=opus", "ogg"),
    EncodingFormat("OGG", "VORBIS", "audio/ogg;codecs=vorbis", "ogg"),
)
DEFAULT_ENCODING = EncodingFormat("WAV", "PCM_16", "audio/wav", "wav")


def _soundfile_supports(encoding: EncodingFormat) -> bool:
    return sf.check_format(encoding.container, encoding.subtype)


def select_encoding(
    sample_rate: int,
    preferences: Iterable[EncodingFormat] = ENCODING_PREFERENCES,
    is_supported: Optional[Callable[[EncodingFormat], bool]] = None,
) -> EncodingFormat:
    """Pick the first supported format from ``preferences``, else the WAV default."""
    is_supported = is_supported or _soundfile_supports
    for encoding in preferences:
        if encoding.subtype == "OPUS" and sample_rate not in OPUS_SAMPLE_RATES:
            continue
        if is_supported(encoding):
            logger.info(f"Selected encoding {encoding.mime_type}")
            return encoding
    logger.info(f"No preferred encoding supported, falling back to {DEFAULT_ENCODING.mime_type}")
    return DEFAULT_ENCODING


class SegmentEncoder(ABC):

    def __init__(self, encoding: EncodingFormat, sample_rate: int, channels: int):
        self.encoding = encoding
        self.sample_rate = sample_rate
        self.channels = channels

    @abstractmethod
    def encode(self, frames: np.ndarray) -> bytes:
        """Encode int16 frames shaped (n, channels) into one segment."""

    @abstractmethod
    def finalize(self, segments: List[bytes]) -> bytes:
        """Join segments into the finished artifact."""


class SoundFileSegmentEncoder(SegmentEncoder):
    """Encodes each segment as a self-contained Ogg stream with libsndfile."""

    def encode(self, frames: np.ndarray) -> bytes:
        buffer = io.BytesIO()
        with sf.SoundFile(
            buffer,
            mode="w",
            samplerate=self.sample_rate,
            channels=self.channels,
            format=self.encoding.container,
            subtype=self.encoding.subtype,
        ) as sound_file:
            sound_file.write(frames)
        return buffer.getvalue()

    def finalize(self, segments: List[bytes]) -> bytes:
        return b"".join(segments)


class WaveSegmentEncoder(SegmentEncoder):
    """Keeps raw little-endian PCM per segment and writes a WAV header on finalize."""

    def encode(self, frames: np.ndarray) -> bytes:
        return np.ascontiguousarray(frames, dtype="<i2").tobytes()

    def finalize(self, segments: List[bytes]) -> bytes:
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(2)  # 16-bit
            wf.setframerate(self.sample_rate)
            for segment in segments:
                wf.writeframes(segment)
        return buffer.getvalue()


def create_encoder(encoding: EncodingFormat, sample_rate: int, channels: int) -> SegmentEncoder:
    if encoding.container == "WAV":
        return WaveSegmentEncoder(encoding, sample_rate, channels)
    return SoundFileSegmentEncoder(encoding, sample_rate, channels)
