"""Drives one session from capture through transcription and summarization."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..audio.acquirer import AudioSourceAcquirer
from ..audio.mixer import StreamMixer
from ..audio.recorder import Recorder
from ..errors import AudioInterruptedError, ErrorKind, OpenNotesError, SummarizationFailedError
from ..models.events import CompletionEvent, ErrorEvent, ProgressEvent
from ..models.session import (
    ErrorInfo,
    IdleState,
    RecordingState,
    TranscriptResult,
)
from ..models.transcription import Transcript
from ..storage.artifact_store import ArtifactStore
from ..summarization.orchestrator import SummarizationOrchestrator
from ..transcription.orchestrator import TranscriptionOrchestrator
from .event_channel import SessionEventChannel
from .session_machine import (
    DisplayResult,
    Fail,
    Reset,
    SessionStateMachine,
    StartRecording,
    StopRecording,
    TickDuration,
    UpdateProgress,
)

logger = logging.getLogger(__name__)

SUMMARIZING_PROGRESS = 95


def progress_message(progress: int) -> str:
    """User-facing description of a processing percentage."""
    if progress < 30:
        return "Uploading audio..."
    if progress < 90:
        return "Transcribing..."
    if progress < 95:
        return "Saving transcript..."
    return "Generating summary..."


class SessionController:
    """Accepts start/stop commands and runs the capture-to-summary pipeline.

    Every collaborator is injected so tests can substitute fakes. State only
    changes through the state machine; progress and results are published on
    the event channel.
    """

    def __init__(
        self,
        acquirer: AudioSourceAcquirer,
        mixer: StreamMixer,
        recorder: Recorder,
        transcriber: TranscriptionOrchestrator,
        summarizer: SummarizationOrchestrator,
        store: ArtifactStore,
        machine: Optional[SessionStateMachine] = None,
        channel: Optional[SessionEventChannel] = None,
        tick_interval: float = 1.0,
    ):
        self.acquirer = acquirer
        self.mixer = mixer
        self.recorder = recorder
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.store = store
        self.machine = machine or SessionStateMachine()
        self.channel = channel or SessionEventChannel()
        self.tick_interval = tick_interval

        self.acquirer.on_interrupted = self._on_interrupted
        self._tick_task: Optional[asyncio.Task] = None
        self._interruption_task: Optional[asyncio.Task] = None

    @property
    def state(self):
        return self.machine.state

    async def start_recording(self) -> bool:
        """Acquire audio and start recording. Returns False if nothing started."""
        if not isinstance(self.machine.state, IdleState):
            logger.warning(f"Cannot start recording in state {self.machine.state.status.value}")
            return False

        self.channel.reset()
        sources = None
        try:
            sources = await self.acquirer.acquire()
            stream = self.mixer.mix(mic=sources.mic, system=sources.system)
            await self.recorder.start(stream)
        except Exception as e:
            if sources is not None:
                self.acquirer.release(sources)
            self._fail(e)
            return False

        self.acquirer.recording_active = True
        self.machine.dispatch(StartRecording())
        self._tick_task = asyncio.create_task(self._tick(), name="recording-tick")
        logger.info(sources.description)
        return True

    async def _tick(self) -> None:
        duration = 0
        while True:
            await asyncio.sleep(self.tick_interval)
            duration += 1
            self.machine.dispatch(TickDuration(duration))

    async def _cancel_tick(self) -> None:
        task, self._tick_task = self._tick_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def stop_recording(self) -> Optional[TranscriptResult]:
        """Stop recording and process the result.

        Returns:
            The displayed result, or None if the session failed or was not recording
        """
        if not isinstance(self.machine.state, RecordingState):
            logger.warning(f"Cannot stop recording in state {self.machine.state.status.value}")
            return None

        if self._interruption_task is not None and not self._interruption_task.done():
            logger.info("Stop requested while handling an interrupted source")
            await self._interruption_task
            return None

        self.acquirer.recording_active = False
        await self._cancel_tick()
        self.machine.dispatch(StopRecording())

        try:
            artifact = await self.recorder.stop()
            audio_path = self.store.save_temp_audio(artifact)
        except Exception as e:
            self._fail(e)
            return None

        metadata = {
            "audio_duration_seconds": round(artifact.duration_seconds, 3),
            "mime_type": artifact.mime_type,
            "sample_rate": artifact.sample_rate,
            "channels": artifact.channels,
        }
        return await self.process(audio_path, metadata)

    async def process(self, audio_path: Path, metadata: Optional[Dict[str, Any]] = None
                      ) -> Optional[TranscriptResult]:
        """Transcribe, persist and summarize a recorded artifact."""
        try:
            transcript = await self.transcriber.transcribe(audio_path, on_progress=self._report_progress)
            transcript_path = self.store.save_transcript(transcript, metadata)
        except Exception as e:
            self._fail(e)
            return None

        self.store.cleanup_temp_file(audio_path)

        self._report_progress(SUMMARIZING_PROGRESS)
        result = await self._summarize(transcript, transcript_path)

        self.machine.dispatch(DisplayResult(result))
        self.channel.publish(CompletionEvent(result=result))
        return result

    async def _summarize(self, transcript: Transcript, transcript_path: Path) -> TranscriptResult:
        try:
            summary = await self.summarizer.summarize(transcript)
            summary_path = self.store.save_summary(summary, transcript_path)
        except SummarizationFailedError as e:
            logger.warning(f"Summary unavailable: {e}")
            return TranscriptResult(transcript=transcript, transcript_path=transcript_path,
                                    summary_error=str(e))
        except OSError as e:
            logger.error(f"Failed to save summary: {e}")
            return TranscriptResult(transcript=transcript, transcript_path=transcript_path,
                                    summary_error=f"Failed to save summary: {e}")

        return TranscriptResult(transcript=transcript, transcript_path=transcript_path,
                                summary=summary, summary_path=summary_path)

    def _report_progress(self, progress: int) -> None:
        message = progress_message(progress)
        if self.machine.dispatch(UpdateProgress(progress, message)):
            self.channel.publish(ProgressEvent(progress=progress, message=message))

    def _fail(self, error: Exception) -> None:
        if isinstance(error, OpenNotesError):
            logger.error(f"Session failed: {error}")
            info = ErrorInfo.from_exception(error)
        else:
            logger.error(f"Unexpected error in session: {error}", exc_info=True)
            info = ErrorInfo.from_exception(error, kind=ErrorKind.RUNTIME)

        if self.machine.dispatch(Fail(info)):
            self.channel.publish(ErrorEvent(error=info))

    def _on_interrupted(self, error: AudioInterruptedError) -> None:
        if not isinstance(self.machine.state, RecordingState):
            return
        self.acquirer.recording_active = False
        self._interruption_task = asyncio.ensure_future(self._handle_interruption(error))

    async def _handle_interruption(self, error: AudioInterruptedError) -> None:
        await self._cancel_tick()
        try:
            await self.recorder.abort()
        finally:
            self._fail(error)

    async def wait_for_interruption(self) -> None:
        """Wait until a pending interruption has been handled."""
        if self._interruption_task is not None:
            await self._interruption_task

    def reset(self) -> bool:
        """Return to IDLE from a finished or failed session."""
        if not self.machine.dispatch(Reset()):
            return False
        self.channel.reset()
        return True
