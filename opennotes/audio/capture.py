"""Live capture tracks: microphone and system loopback via PyAudio."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
import pyaudio

from ..errors import AudioCaptureError, SourceKind

logger = logging.getLogger(__name__)


class AudioSource(ABC):
    """One live input track.

    A source is also a valid mixed stream on its own, which is how the mixer
    passes a single source through unchanged.
    """

    def __init__(self, kind: SourceKind, sample_rate: int, channels: int):
        self.kind = kind
        self.sample_rate = sample_rate
        self.channels = channels
        self.ended = False
        self.stopped = False
        self._end_listeners: List[Callable[["AudioSource"], None]] = []

    @property
    def sources(self) -> Tuple["AudioSource", ...]:
        return (self,)

    def add_end_listener(self, listener: Callable[["AudioSource"], None]) -> None:
        """Register a callback invoked once when the track ends."""
        self._end_listeners.append(listener)

    def _mark_ended(self) -> None:
        if self.ended:
            return
        self.ended = True
        logger.info(f"{self.kind.value} track ended (stopped by owner: {self.stopped})")
        for listener in list(self._end_listeners):
            listener(self)

    @abstractmethod
    async def read(self) -> Optional[np.ndarray]:
        """Return the next block as int16 frames shaped (n, channels), or None once ended."""

    def drain(self) -> Optional[np.ndarray]:
        """Return frames captured but not yet read, without waiting."""
        return None

    @abstractmethod
    def _release(self) -> None:
        """Free the underlying device."""

    def stop(self) -> None:
        """Stop the track. Safe to call more than once."""
        if self.stopped:
            return
        self.stopped = True
        try:
            self._release()
        finally:
            self._mark_ended()

    def close(self) -> None:
        self.stop()


class PyAudioSource(AudioSource):
    """A PyAudio input stream whose callback feeds the event loop."""

    def __init__(
        self,
        kind: SourceKind,
        pyaudio_instance: pyaudio.PyAudio,
        device_info: Dict[str, Any],
        sample_rate: int,
        channels: int,
        chunk_size: int = 1024,
        stall_timeout: float = 2.0,
    ):
        super().__init__(kind, sample_rate, channels)
        self.pyaudio_instance = pyaudio_instance
        self.device_info = device_info
        self.chunk_size = chunk_size
        self.stall_timeout = stall_timeout
        self.total_chunks = 0

        self._stream: Optional[pyaudio.Stream] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None

    def open(self) -> None:
        """Open the device stream. Must be called from inside the event loop."""
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        try:
            self._stream = self.pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_info.get('index'),
                frames_per_buffer=self.chunk_size,
                stream_callback=self._on_audio,
            )
        except (OSError, ValueError) as e:
            raise AudioCaptureError(
                f"Could not open {self.kind.value} device '{self.device_info.get('name')}': {e}"
            ) from e
        logger.info(f"{self.kind.value} stream opened: {self.device_info.get('name')} "
                    f"{self.sample_rate}Hz, {self.channels}ch, {self.chunk_size} samples/chunk")

    def _on_audio(self, in_data, frame_count, time_info, status):
        # Runs on the PortAudio thread: hand the block to the loop and return.
        if self.stopped or self._loop is None:
            return (None, pyaudio.paComplete)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, in_data)
        return (None, pyaudio.paContinue)

    async def read(self) -> Optional[np.ndarray]:
        while not self.ended:
            try:
                data = await asyncio.wait_for(self._queue.get(), timeout=self.stall_timeout)
            except asyncio.TimeoutError:
                if self.stopped or self._stream is None or not self._stream.is_active():
                    self._mark_ended()
                    return None
                logger.debug(f"{self.kind.value} stream stalled for {self.stall_timeout}s, still active")
                continue

            self.total_chunks += 1
            return np.frombuffer(data, dtype=np.int16).reshape(-1, self.channels)
        return None

    def drain(self) -> Optional[np.ndarray]:
        if self._queue is None or self._queue.empty():
            return None
        blocks = []
        while not self._queue.empty():
            blocks.append(self._queue.get_nowait())
        self.total_chunks += len(blocks)
        return np.frombuffer(b"".join(blocks), dtype=np.int16).reshape(-1, self.channels)

    def _release(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            finally:
                self._stream = None
        logger.info(f"{self.kind.value} stream released after {self.total_chunks} chunks")


class AudioDeviceLocator:
    """Finds the default microphone and a loopback device for system audio."""

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, loopback_hints: Sequence[str]):
        self.pyaudio_instance = pyaudio_instance
        self.loopback_hints = [hint.lower() for hint in loopback_hints]

    def find_microphone(self) -> Dict[str, Any]:
        try:
            device = self.pyaudio_instance.get_default_input_device_info()
        except (OSError, IOError) as e:
            raise AudioCaptureError(f"No default microphone: {e}") from e
        logger.info(f"Default mic: {device['name']}")
        return device

    def find_loopback(self) -> Dict[str, Any]:
        """Search input devices for a loopback/monitor device."""
        for i in range(self.pyaudio_instance.get_device_count()):
            device = self.pyaudio_instance.get_device_info_by_index(i)
            if int(device.get('maxInputChannels', 0)) <= 0:
                continue
            name = str(device.get('name', '')).lower()
            if device.get('isLoopbackDevice', False) or any(hint in name for hint in self.loopback_hints):
                logger.info(f"Found loopback device: {device['name']} "
                            f"({device.get('defaultSampleRate')}Hz, {device.get('maxInputChannels')}ch)")
                return device
        raise AudioCaptureError("No loopback device found for system audio capture")


class PyAudioSourceFactory:
    """Opens microphone and system tracks on demand."""

    def __init__(
        self,
        sample_rate: int = 48000,
        chunk_size: int = 1024,
        stall_timeout: float = 2.0,
        loopback_hints: Sequence[str] = ("loopback", "monitor", "blackhole", "stereo mix"),
    ):
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.stall_timeout = stall_timeout
        self.loopback_hints = list(loopback_hints)
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    async def open_source(self, kind: SourceKind) -> AudioSource:
        if self.pyaudio_instance is None:
            self.pyaudio_instance = pyaudio.PyAudio()
        locator = AudioDeviceLocator(self.pyaudio_instance, self.loopback_hints)

        if kind is SourceKind.MIC:
            device = locator.find_microphone()
            sample_rate, channels = self.sample_rate, 1
        else:
            device = locator.find_loopback()
            sample_rate = int(device.get('defaultSampleRate') or self.sample_rate)
            channels = max(1, min(int(device.get('maxInputChannels', 1)), 2))

        source = PyAudioSource(
            kind=kind,
            pyaudio_instance=self.pyaudio_instance,
            device_info=device,
            sample_rate=sample_rate,
            channels=channels,
            chunk_size=self.chunk_size,
            stall_timeout=self.stall_timeout,
        )
        source.open()
        return source

    def terminate(self) -> None:
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
