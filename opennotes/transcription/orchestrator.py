"""Drives one recording through upload, job submission and polling."""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Type, Union

import aiohttp

from ..errors import (
    TranscriptionFailedError,
    TranscriptionTimeoutError,
    TranscriptionTransportError,
    UploadError,
)
from ..models.transcription import (
    JobStatus,
    JobStatusResponse,
    Transcript,
    TranscriptionConfig,
    TranscriptionJob,
)
from .base import AbstractTranscriptionProvider

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

UPLOAD_STARTED_PROGRESS = 10
JOB_SUBMITTED_PROGRESS = 30
COMPLETED_PROGRESS = 100
STATUS_PROGRESS = {
    JobStatus.QUEUED: 10,
    JobStatus.PROCESSING: 50,
}

# Failures of the network stack itself, as opposed to provider answers
_TRANSPORT_FAILURES = (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError)


class ProgressProjection:
    """Forwards progress only when it increases."""

    def __init__(self, on_progress: Optional[ProgressCallback]):
        self.on_progress = on_progress
        self.last = -1

    def report(self, value: int) -> None:
        if value <= self.last:
            return
        self.last = value
        if self.on_progress is not None:
            self.on_progress(value)


class TranscriptionOrchestrator:
    """Uploads an artifact, submits a job and polls it until it finishes."""

    def __init__(
        self,
        provider: AbstractTranscriptionProvider,
        config: Optional[TranscriptionConfig] = None,
        poll_interval: float = 3.0,
        max_polls: int = 200,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.config = config or TranscriptionConfig()
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._sleep = sleep

    async def _call(self, error_cls: Type[TranscriptionTransportError], awaitable: Awaitable):
        try:
            return await awaitable
        except TranscriptionTransportError:
            raise
        except _TRANSPORT_FAILURES as e:
            raise error_cls(f"Transport failure: {e}") from e

    async def transcribe(self, artifact_path: Union[str, Path],
                         on_progress: Optional[ProgressCallback] = None) -> Transcript:
        """Transcribe the audio file at ``artifact_path``.

        Raises:
            UploadError: the upload failed
            TranscriptionTransportError: job submission or a poll failed
            TranscriptionFailedError: the provider reported an error status
            TranscriptionTimeoutError: the poll limit was reached
        """
        progress = ProgressProjection(on_progress)
        data = Path(artifact_path).read_bytes()

        progress.report(UPLOAD_STARTED_PROGRESS)
        audio_url = await self._call(UploadError, self.provider.upload(data))
        job_id = await self._call(TranscriptionTransportError, self.provider.submit(audio_url, self.config))
        job = TranscriptionJob(id=job_id, source_url=audio_url)
        logger.info(f"Transcription started: {job.id}")
        progress.report(JOB_SUBMITTED_PROGRESS)

        while job.poll_count < self.max_polls:
            response = await self._call(TranscriptionTransportError, self.provider.get_status(job.id))
            job.poll_count += 1
            job.status = response.status
            logger.debug(f"Job {job.id} poll {job.poll_count}: {job.status.value}")

            if job.status is JobStatus.COMPLETED:
                progress.report(COMPLETED_PROGRESS)
                logger.info(f"Transcription completed after {job.poll_count} polls")
                return self._build_transcript(job, response)

            if job.status is JobStatus.ERROR:
                logger.error(f"Transcription job {job.id} failed: {response.error}")
                raise TranscriptionFailedError(response.error)

            progress.report(STATUS_PROGRESS[job.status])
            if job.poll_count < self.max_polls:
                await self._sleep(self.poll_interval)

        logger.error(f"Transcription job {job.id} timed out after {job.poll_count} polls")
        raise TranscriptionTimeoutError(self.max_polls, self.poll_interval)

    @staticmethod
    def _build_transcript(job: TranscriptionJob, response: JobStatusResponse) -> Transcript:
        utterances = sorted(response.utterances or [], key=lambda u: u.start_ms)
        return Transcript(
            id=job.id,
            text=response.text or "",
            confidence=response.confidence or 0.0,
            duration_seconds=response.duration_seconds or 0.0,
            utterances=utterances,
            words=list(response.words or []),
        )
