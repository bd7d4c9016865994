"""Recorder: encodes the mixed stream incrementally and produces the final artifact."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

import numpy as np

from ..errors import EncodingError, NoActiveRecordingError, RecordingInProgressError, SourceKind
from ..models.audio import AudioStats, BinaryArtifact
from .capture import AudioSource
from .encoding import (
    ENCODING_PREFERENCES,
    EncodingFormat,
    SegmentEncoder,
    create_encoder,
    select_encoding,
)
from .mixer import MixedStream

logger = logging.getLogger(__name__)


@dataclass
class AudioSession:
    """The one in-flight recording and every resource it holds."""
    mixed_stream: MixedStream
    encoder: SegmentEncoder
    mic_stream: Optional[AudioSource] = None
    system_stream: Optional[AudioSource] = None
    chunks: List[bytes] = field(default_factory=list)
    pending: List[np.ndarray] = field(default_factory=list)
    pending_frames: int = 0
    total_frames: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    released: bool = False

    def release(self) -> None:
        """Stop all tracks and drop the mixing graph. Idempotent."""
        if self.released:
            return
        self.released = True
        try:
            self.mixed_stream.close()
        finally:
            for track in (self.mic_stream, self.system_stream):
                if track is not None:
                    track.stop()
        logger.info("Audio session released")


class Recorder:
    """Owns the audio hardware and encoder for the lifetime of one session."""

    def __init__(
        self,
        flush_interval: float = 1.0,
        preferences: Iterable[EncodingFormat] = ENCODING_PREFERENCES,
        is_supported: Optional[Callable[[EncodingFormat], bool]] = None,
    ):
        """Initialize recorder.

        Args:
            flush_interval: Seconds of audio buffered before a segment is encoded
            preferences: Formats to try, most capable first
            is_supported: Override for the format support check
        """
        self.flush_interval = flush_interval
        self.preferences = tuple(preferences)
        self.is_supported = is_supported

        self.session: Optional[AudioSession] = None
        self._pump_task: Optional[asyncio.Task] = None

    @property
    def is_recording(self) -> bool:
        return self.session is not None

    async def start(self, stream: MixedStream) -> None:
        """Start encoding ``stream`` in the background."""
        if self.session is not None:
            raise RecordingInProgressError()

        encoding = select_encoding(stream.sample_rate, self.preferences, self.is_supported)
        tracks = {source.kind: source for source in stream.sources}
        session = AudioSession(
            mixed_stream=stream,
            encoder=create_encoder(encoding, stream.sample_rate, stream.channels),
            mic_stream=tracks.get(SourceKind.MIC),
            system_stream=tracks.get(SourceKind.SYSTEM),
        )
        self.session = session
        self._pump_task = asyncio.create_task(self._pump(session), name="recorder-pump")
        logger.info(f"Recording started: {stream.sample_rate}Hz, {stream.channels}ch, "
                    f"{encoding.mime_type}, flush every {self.flush_interval}s")

    async def _pump(self, session: AudioSession) -> None:
        flush_frames = max(1, int(self.flush_interval * session.encoder.sample_rate))
        while True:
            frames = await session.mixed_stream.read()
            if frames is None:
                logger.info("Mixed stream ended")
                return
            session.pending.append(frames)
            session.pending_frames += len(frames)
            session.total_frames += len(frames)
            if session.pending_frames >= flush_frames:
                self._flush(session)

    def _flush(self, session: AudioSession) -> None:
        if not session.pending:
            return
        block = np.concatenate(session.pending, axis=0)
        session.pending = []
        session.pending_frames = 0
        session.chunks.append(session.encoder.encode(block))
        logger.debug(f"Flushed segment {len(session.chunks)}: {len(block)} frames")

    async def _halt_pump(self) -> None:
        task, self._pump_task = self._pump_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Recorder pump failed: {e}", exc_info=True)

    async def stop(self) -> BinaryArtifact:
        """Stop recording and return the finished artifact.

        Hardware is released even when the segments cannot be joined.

        Raises:
            NoActiveRecordingError: if start() was never called
            EncodingError: if the buffered segments could not be finalized
        """
        if self.session is None:
            raise NoActiveRecordingError()

        session, self.session = self.session, None
        try:
            await self._halt_pump()
            tail = session.mixed_stream.drain()
            if tail is not None:
                session.pending.append(tail)
                session.pending_frames += len(tail)
                session.total_frames += len(tail)
            try:
                self._flush(session)
                data = session.encoder.finalize(session.chunks)
            except Exception as e:
                raise EncodingError(f"Failed to finalize recording: {e}") from e
        finally:
            session.release()

        encoder = session.encoder
        duration = session.total_frames / encoder.sample_rate
        logger.info(f"Recording stopped: {duration:.1f}s, {len(session.chunks)} segments, {len(data)} bytes")
        return BinaryArtifact(
            data=data,
            mime_type=encoder.encoding.mime_type,
            extension=encoder.encoding.extension,
            sample_rate=encoder.sample_rate,
            channels=encoder.channels,
            duration_seconds=duration,
        )

    async def abort(self) -> None:
        """Drop the current session without producing an artifact."""
        if self.session is None:
            return
        session, self.session = self.session, None
        try:
            await self._halt_pump()
        finally:
            session.release()
        logger.info("Recording aborted")

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        session = self.session
        if session is None:
            return AudioStats(is_recording=False, duration_seconds=0.0, sample_rate=0,
                              channels=0, total_chunks=0, total_frames=0)
        return AudioStats(
            is_recording=True,
            duration_seconds=session.total_frames / session.encoder.sample_rate,
            sample_rate=session.encoder.sample_rate,
            channels=session.encoder.channels,
            total_chunks=len(session.chunks),
            total_frames=session.total_frames,
        )
