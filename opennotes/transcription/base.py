"""Abstract base class for transcription providers."""

from abc import ABC, abstractmethod

from ..models.transcription import JobStatusResponse, TranscriptionConfig


class AbstractTranscriptionProvider(ABC):
    """Asynchronous batch transcription service: upload, submit, poll."""

    @abstractmethod
    async def upload(self, data: bytes) -> str:
        """Upload audio bytes and return the URL the provider can read them from.

        Raises:
            UploadError: on any transport failure
        """

    @abstractmethod
    async def submit(self, audio_url: str, config: TranscriptionConfig) -> str:
        """Start a transcription job and return its id.

        Raises:
            TranscriptionTransportError: on any transport failure
        """

    @abstractmethod
    async def get_status(self, job_id: str) -> JobStatusResponse:
        """Fetch the current state of a job.

        Raises:
            TranscriptionTransportError: on any transport failure
        """
