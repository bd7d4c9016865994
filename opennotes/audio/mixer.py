"""Combines the available tracks into one encodable stream."""

import asyncio
import logging
from math import gcd
from typing import Optional, Tuple, Union

import numpy as np
from scipy.signal import resample_poly

from ..errors import NoAudioSourceError
from .capture import AudioSource

logger = logging.getLogger(__name__)


class ChannelMergeStream:
    """Two-channel merge: mic on channel 0, system audio on channel 1.

    Each input is downmixed to mono and resampled to ``sample_rate``. Blocks
    from the two devices rarely have the same length, so each channel keeps a
    carry buffer and only the overlapping part is emitted.
    """

    channels = 2

    def __init__(self, mic: AudioSource, system: AudioSource, sample_rate: int = 48000):
        self.mic = mic
        self.system = system
        self.sample_rate = sample_rate
        self._carry = [np.zeros(0, dtype=np.float32), np.zeros(0, dtype=np.float32)]
        self.closed = False

    @property
    def sources(self) -> Tuple[AudioSource, AudioSource]:
        return (self.mic, self.system)

    def _to_mono(self, frames: np.ndarray, source_rate: int) -> np.ndarray:
        mono = frames.astype(np.float32)
        if mono.ndim > 1:
            mono = mono.mean(axis=1)
        if source_rate != self.sample_rate:
            divisor = gcd(self.sample_rate, source_rate)
            mono = resample_poly(mono, self.sample_rate // divisor, source_rate // divisor)
        return mono.astype(np.float32)

    def _append(self, index: int, frames: np.ndarray) -> None:
        source = self.sources[index]
        self._carry[index] = np.concatenate([self._carry[index], self._to_mono(frames, source.sample_rate)])

    async def _fill(self, index: int) -> bool:
        frames = await self.sources[index].read()
        if frames is None:
            return False
        self._append(index, frames)
        return True

    def _take(self, length: int) -> np.ndarray:
        merged = np.column_stack([self._carry[0][:length], self._carry[1][:length]])
        self._carry = [self._carry[0][length:], self._carry[1][length:]]
        return np.clip(np.rint(merged), -32768, 32767).astype(np.int16)

    async def read(self) -> Optional[np.ndarray]:
        """Return the next merged block as int16 frames shaped (n, 2), or None once either side ends.

        Only the channel that has run dry is read, so each device is consumed
        at its own rate and neither backlog grows.
        """
        while not self.closed:
            length = min(len(self._carry[0]), len(self._carry[1]))
            if length > 0:
                return self._take(length)

            empty = [index for index in (0, 1) if len(self._carry[index]) == 0]
            filled = await asyncio.gather(*(self._fill(index) for index in empty))
            if not all(filled):
                return None
        return None

    def drain(self) -> Optional[np.ndarray]:
        """Merge everything still buffered, padding the shorter channel with silence."""
        for index, source in enumerate(self.sources):
            frames = source.drain()
            if frames is not None:
                self._append(index, frames)

        length = max(len(self._carry[0]), len(self._carry[1]))
        if length == 0:
            return None
        self._carry = [np.pad(carry, (0, length - len(carry))) for carry in self._carry]
        return self._take(length)

    def close(self) -> None:
        """Tear down the merge graph and stop both tracks."""
        self.closed = True
        self._carry = [np.zeros(0, dtype=np.float32), np.zeros(0, dtype=np.float32)]
        self.mic.stop()
        self.system.stop()


MixedStream = Union[AudioSource, ChannelMergeStream]


class StreamMixer:
    """Selects how the available sources become a single stream."""

    def __init__(self, sample_rate: int = 48000):
        self.sample_rate = sample_rate

    def mix(self, mic: Optional[AudioSource] = None,
            system: Optional[AudioSource] = None) -> MixedStream:
        if mic is not None and system is not None:
            logger.info("Mixing mic + system audio into two channels")
            return ChannelMergeStream(mic, system, sample_rate=self.sample_rate)
        if system is not None:
            logger.info("Passing system audio through (no mic)")
            return system
        if mic is not None:
            logger.info("Passing microphone through (no system audio)")
            return mic
        raise NoAudioSourceError()
