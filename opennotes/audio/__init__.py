"""Audio capture, mixing and recording."""

from .capture import AudioSource, PyAudioSource, PyAudioSourceFactory, AudioDeviceLocator
from .acquirer import AudioSourceAcquirer, AcquiredSources
from .mixer import StreamMixer, ChannelMergeStream, MixedStream
from .recorder import Recorder, AudioSession

__all__ = [
    'AudioSource',
    'PyAudioSource',
    'PyAudioSourceFactory',
    'AudioDeviceLocator',
    'AudioSourceAcquirer',
    'AcquiredSources',
    'StreamMixer',
    'ChannelMergeStream',
    'MixedStream',
    'Recorder',
    'AudioSession',
]
