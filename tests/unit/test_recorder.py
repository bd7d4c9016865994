"""Unit tests for the Recorder and encoding selection."""

import asyncio
import io
import wave
from unittest.mock import patch

import numpy as np
import pytest

from opennotes.audio.encoding import (
    DEFAULT_ENCODING,
    ENCODING_PREFERENCES,
    WaveSegmentEncoder,
    select_encoding,
)
from opennotes.audio.mixer import StreamMixer
from opennotes.audio.recorder import Recorder
from opennotes.errors import (
    EncodingError,
    NoActiveRecordingError,
    RecordingInProgressError,
    SourceKind,
)


def wav_recorder(flush_interval=0.1):
    """Recorder forced onto the WAV fallback so tests do not depend on libsndfile codecs."""
    return Recorder(flush_interval=flush_interval, is_supported=lambda encoding: False)


def blocks(count, frames, channels=1, value=1000):
    return [np.full((frames, channels), value, dtype=np.int16) for _ in range(count)]


async def wait_for_frames(recorder, total_frames):
    for _ in range(500):
        if recorder.get_recording_stats().total_frames >= total_frames:
            return
        await asyncio.sleep(0.005)
    raise AssertionError("recorder did not consume the expected frames")


@pytest.mark.unit
class TestEncodingSelection:
    """Test cases for select_encoding."""

    def test_prefers_opus_at_supported_rate(self):
        assert select_encoding(48000, is_supported=lambda e: True) == ENCODING_PREFERENCES[0]

    def test_skips_opus_at_unsupported_rate(self):
        encoding = select_encoding(44100, is_supported=lambda e: True)

        assert encoding.subtype == "VORBIS"

    def test_falls_back_to_default(self):
        assert select_encoding(48000, is_supported=lambda e: False) == DEFAULT_ENCODING


@pytest.mark.unit
class TestRecorder:
    """Test cases for Recorder."""

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        recorder = wav_recorder()

        with pytest.raises(NoActiveRecordingError):
            await recorder.stop()

    @pytest.mark.asyncio
    async def test_start_twice(self, make_source):
        recorder = wav_recorder()
        await recorder.start(make_source(SourceKind.MIC))

        with pytest.raises(RecordingInProgressError):
            await recorder.start(make_source(SourceKind.MIC))

        await recorder.abort()

    @pytest.mark.asyncio
    async def test_segments_flush_at_interval(self, make_source):
        recorder = wav_recorder(flush_interval=0.1)
        source = make_source(SourceKind.MIC, blocks=blocks(5, 4800))

        await recorder.start(source)
        await wait_for_frames(recorder, 24000)
        stats = recorder.get_recording_stats()

        assert stats.is_recording is True
        assert stats.total_chunks == 5
        assert stats.duration_seconds == pytest.approx(0.5)

        artifact = await recorder.stop()

        assert artifact.mime_type == "audio/wav"
        assert artifact.extension == "wav"
        assert artifact.duration_seconds == pytest.approx(0.5)
        with wave.open(io.BytesIO(artifact.data), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getframerate() == 48000
            assert wf.getnframes() == 24000

    @pytest.mark.asyncio
    async def test_stop_flushes_partial_segment(self, make_source):
        recorder = wav_recorder(flush_interval=0.1)
        source = make_source(SourceKind.MIC, blocks=blocks(3, 3000))

        await recorder.start(source)
        await wait_for_frames(recorder, 9000)

        assert recorder.get_recording_stats().total_chunks == 1

        artifact = await recorder.stop()

        with wave.open(io.BytesIO(artifact.data), "rb") as wf:
            assert wf.getnframes() == 9000

    @pytest.mark.asyncio
    async def test_stop_releases_tracks(self, make_source):
        mic = make_source(SourceKind.MIC)
        system = make_source(SourceKind.SYSTEM)
        recorder = wav_recorder()

        await recorder.start(StreamMixer().mix(mic=mic, system=system))
        await asyncio.sleep(0.02)
        artifact = await recorder.stop()

        assert artifact.channels == 2
        assert mic.stopped and mic.released
        assert system.stopped and system.released
        assert recorder.is_recording is False

    @pytest.mark.asyncio
    async def test_finalize_failure_still_releases_tracks(self, make_source):
        source = make_source(SourceKind.MIC)
        recorder = wav_recorder()
        await recorder.start(source)
        await asyncio.sleep(0.02)

        with patch.object(WaveSegmentEncoder, 'finalize', side_effect=ValueError("corrupt segment")):
            with pytest.raises(EncodingError, match="corrupt segment"):
                await recorder.stop()

        assert source.stopped is True
        assert recorder.is_recording is False

    @pytest.mark.asyncio
    async def test_abort_discards_session(self, make_source):
        source = make_source(SourceKind.SYSTEM)
        recorder = wav_recorder()
        await recorder.start(source)

        await recorder.abort()

        assert source.stopped is True
        with pytest.raises(NoActiveRecordingError):
            await recorder.stop()

    def test_stats_when_idle(self):
        stats = wav_recorder().get_recording_stats()

        assert stats.is_recording is False
        assert stats.total_frames == 0
