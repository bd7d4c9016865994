"""Pytest configuration and fixtures for OpenNotes tests."""

import asyncio
import json
import logging
import tempfile
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from opennotes.audio.capture import AudioSource
from opennotes.errors import SourceKind
from opennotes.models import (
    JobStatus,
    JobStatusResponse,
    Transcript,
    Utterance,
    Word,
)
from opennotes.storage import ArtifactStore
from opennotes.transcription.base import AbstractTranscriptionProvider


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no hardware or network")
    config.addinivalue_line("markers", "integration: full pipeline with fake providers")
    config.addinivalue_line("markers", "hardware: needs a real audio input device")


class FakeAudioSource(AudioSource):
    """Capture track that yields canned blocks, or silence forever."""

    def __init__(self, kind: SourceKind, sample_rate: int = 48000, channels: int = 1,
                 blocks=None, block_frames: int = 480):
        super().__init__(kind, sample_rate, channels)
        self.blocks = deque(blocks) if blocks is not None else None
        self.block_frames = block_frames
        self.released = False

    async def read(self):
        await asyncio.sleep(0.001)
        if self.stopped or self.ended:
            return None
        if self.blocks is None:
            return np.zeros((self.block_frames, self.channels), dtype=np.int16)
        if not self.blocks:
            self._mark_ended()
            return None
        return self.blocks.popleft()

    def _release(self):
        self.released = True

    def unplug(self):
        """Simulate the device disappearing."""
        self._mark_ended()


class FakeSourceFactory:
    """Opens FakeAudioSources; kinds listed in ``unavailable`` fail to open."""

    def __init__(self, unavailable=(), **source_kwargs):
        self.unavailable = set(unavailable)
        self.source_kwargs = source_kwargs
        self.opened = {}

    async def open_source(self, kind):
        if kind in self.unavailable:
            raise OSError(f"{kind.value} device unavailable")
        source = FakeAudioSource(kind, **self.source_kwargs)
        self.opened[kind] = source
        return source


class FakeTranscriptionProvider(AbstractTranscriptionProvider):
    """Returns the scripted poll responses in order, repeating the last one."""

    def __init__(self, responses=None, upload_error=None):
        self.responses = list(responses or [])
        self.upload_error = upload_error
        self.uploaded = []
        self.submitted = []
        self.polls = 0

    async def upload(self, data):
        if self.upload_error is not None:
            raise self.upload_error
        self.uploaded.append(data)
        return "https://cdn.example.com/upload/abc"

    async def submit(self, audio_url, config):
        self.submitted.append((audio_url, config))
        return "job-123"

    async def get_status(self, job_id):
        self.polls += 1
        response = self.responses[min(self.polls, len(self.responses)) - 1]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeSummarizationEngine:
    """Replays scripted replies; exceptions in the script are raised."""

    def __init__(self, replies):
        self.replies = deque(replies)
        self.calls = []

    async def generate(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        reply = self.replies.popleft()
        if isinstance(reply, BaseException):
            raise reply
        return reply


class SleepRecorder:
    """Stand-in for asyncio.sleep that records the requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, delay):
        self.calls.append(delay)


class EventRecorder:
    """pypubsub listener that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-01-01T00:00:00Z."""
    return lambda: datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def store(temp_data_dir, fixed_clock):
    data_dir = Path(temp_data_dir) / "OpenNotes"
    temp_dir = Path(temp_data_dir) / "tmp"
    return ArtifactStore(data_dir, temp_dir, clock=fixed_clock)


@pytest.fixture
def source_factory():
    return FakeSourceFactory


@pytest.fixture
def make_source():
    return FakeAudioSource


@pytest.fixture
def make_provider():
    return FakeTranscriptionProvider


@pytest.fixture
def make_engine():
    return FakeSummarizationEngine


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def sample_utterances():
    return [
        Utterance(speaker_id="2A", text="Thanks for joining.", start_ms=1500, end_ms=2600, channel="2"),
        Utterance(speaker_id="1A", text="Hi everyone, let's start.", start_ms=0, end_ms=1400, channel="1"),
    ]


@pytest.fixture
def completed_response(sample_utterances):
    return JobStatusResponse(
        status=JobStatus.COMPLETED,
        text="Hi everyone, let's start. Thanks for joining.",
        confidence=0.93,
        duration_seconds=2.6,
        utterances=sample_utterances,
        words=[Word(text="Hi", start_ms=0, end_ms=200, confidence=0.99, speaker_id="1A", channel="1")],
    )


@pytest.fixture
def sample_transcript(sample_utterances):
    return Transcript(
        id="job-123",
        text="Hi everyone, let's start. Thanks for joining.",
        confidence=0.93,
        duration_seconds=125.0,
        utterances=sorted(sample_utterances, key=lambda u: u.start_ms),
    )


@pytest.fixture
def summary_reply():
    """A well-formed reply from the summarization engine."""
    return "Here is the summary:\n" + json.dumps({
        "context": "Weekly sync",
        "participants": ["You (Host)", "Participant A"],
        "keyPoints": ["Kickoff"],
        "actionItems": ["Send notes"],
        "summaryMarkdown": "## Overview\nThe team met.",
    })


@pytest.fixture
def pubsub_events():
    """Subscribe recorders to topics; unsubscribed after the test."""
    subscribed = []

    def listen(topic):
        recorder = EventRecorder()
        pub.subscribe(recorder, topic)
        subscribed.append((recorder, topic))
        return recorder

    yield listen

    for recorder, topic in subscribed:
        pub.unsubscribe(recorder, topic)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.is_active.return_value = True
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        devices = [
            {'index': 0, 'name': 'Built-in Microphone', 'maxInputChannels': 1, 'defaultSampleRate': 48000.0},
            {'index': 1, 'name': 'Built-in Output', 'maxInputChannels': 0, 'defaultSampleRate': 48000.0},
            {'index': 2, 'name': 'BlackHole 2ch', 'maxInputChannels': 2, 'defaultSampleRate': 44100.0},
        ]

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = devices[0]
        mock_pyaudio_instance.get_device_count.return_value = len(devices)
        mock_pyaudio_instance.get_device_info_by_index.side_effect = lambda i: devices[i]

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'devices': devices,
        }
