"""Acquires the microphone and system audio tracks independently."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..errors import AudioInterruptedError, NoAudioSourceError, OpenNotesError, SourceKind
from .capture import AudioSource

logger = logging.getLogger(__name__)


class SourceFactory(Protocol):
    """Anything that can open a capture track."""

    async def open_source(self, kind: SourceKind) -> AudioSource:
        ...


@dataclass
class AcquiredSources:
    mic: Optional[AudioSource] = None
    system: Optional[AudioSource] = None

    @property
    def description(self) -> str:
        if self.mic and self.system:
            return "Recording microphone + system audio"
        if self.system:
            return "Recording system audio only (microphone unavailable)"
        return "Recording microphone only (system audio unavailable)"


class AudioSourceAcquirer:
    """Opens each source on its own; only fails when both are unavailable."""

    def __init__(self, factory: SourceFactory,
                 on_interrupted: Optional[Callable[[AudioInterruptedError], None]] = None):
        self.factory = factory
        self.on_interrupted = on_interrupted
        self.recording_active = False

    async def acquire(self) -> AcquiredSources:
        """Request mic and system audio independently.

        Raises:
            NoAudioSourceError: if neither source could be opened
        """
        mic = await self._try_open(SourceKind.MIC)
        system = await self._try_open(SourceKind.SYSTEM)

        if mic is None and system is None:
            raise NoAudioSourceError()

        sources = AcquiredSources(mic=mic, system=system)
        logger.info(sources.description)
        return sources

    async def _try_open(self, kind: SourceKind) -> Optional[AudioSource]:
        try:
            source = await self.factory.open_source(kind)
        except (OpenNotesError, OSError) as e:
            logger.warning(f"{kind.value} audio not available: {e}")
            return None

        source.add_end_listener(self._on_track_ended)
        logger.info(f"{kind.value} audio access granted")
        return source

    def _on_track_ended(self, source: AudioSource) -> None:
        if source.stopped or not self.recording_active:
            return

        error = AudioInterruptedError(source.kind)
        logger.error(str(error))
        if self.on_interrupted is not None:
            self.on_interrupted(error)

    def release(self, sources: AcquiredSources) -> None:
        """Stop every track that was acquired."""
        for source in (sources.mic, sources.system):
            if source is not None:
                source.stop()
