"""AssemblyAI transcription provider over its REST API."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type

import aiohttp

from ..errors import TranscriptionTransportError, UploadError
from ..models.transcription import (
    JobStatus,
    JobStatusResponse,
    TranscriptionConfig,
    Utterance,
    Word,
)
from .base import AbstractTranscriptionProvider

logger = logging.getLogger(__name__)


def _parse_words(items: Optional[List[Dict[str, Any]]]) -> Optional[List[Word]]:
    if items is None:
        return None
    return [
        Word(
            text=item.get("text", ""),
            start_ms=int(item.get("start", 0)),
            end_ms=int(item.get("end", 0)),
            confidence=float(item.get("confidence", 0.0)),
            speaker_id=item.get("speaker"),
            channel=item.get("channel"),
        )
        for item in items
    ]


def _parse_utterances(items: Optional[List[Dict[str, Any]]]) -> Optional[List[Utterance]]:
    if items is None:
        return None
    return [
        Utterance(
            speaker_id=str(item.get("speaker", "")),
            text=item.get("text", ""),
            start_ms=int(item.get("start", 0)),
            end_ms=int(item.get("end", 0)),
            confidence=item.get("confidence"),
            channel=item.get("channel"),
        )
        for item in items
    ]


def parse_transcript_payload(payload: Dict[str, Any]) -> JobStatusResponse:
    """Map an AssemblyAI transcript object onto a JobStatusResponse."""
    try:
        status = JobStatus(payload.get("status"))
    except ValueError as e:
        raise TranscriptionTransportError(f"Unexpected job status: {payload.get('status')!r}") from e

    return JobStatusResponse(
        status=status,
        text=payload.get("text"),
        confidence=payload.get("confidence"),
        duration_seconds=payload.get("audio_duration"),
        utterances=_parse_utterances(payload.get("utterances")),
        words=_parse_words(payload.get("words")),
        error=payload.get("error"),
    )


class AssemblyAIBackend(AbstractTranscriptionProvider):
    """Uploads audio, starts jobs and reads job state from AssemblyAI."""

    def __init__(self, api_key: str, base_url: str = "https://api.assemblyai.com",
                 request_timeout: float = 60.0):
        """Initialize AssemblyAI backend.

        Args:
            api_key: AssemblyAI API key
            base_url: API root, overridable for testing
            request_timeout: Total timeout per HTTP request in seconds
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)

        logger.info(f"AssemblyAIBackend initialized with base url: {self.base_url}")

    @property
    def _headers(self) -> Dict[str, str]:
        return {"authorization": self.api_key}

    async def _request(self, method: str, path: str, error_cls: Type[TranscriptionTransportError],
                       **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, headers=self._headers, **kwargs) as response:
                    if response.status >= 300:
                        error_text = await response.text()
                        raise error_cls(f"AssemblyAI API error: {response.status} - {error_text}")
                    return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise error_cls(f"AssemblyAI request {method} {path} failed: {e}") from e

    async def upload(self, data: bytes) -> str:
        payload = await self._request("POST", "/v2/upload", UploadError, data=data)
        upload_url = payload.get("upload_url")
        if not upload_url:
            raise UploadError("Upload response did not contain an upload_url")
        logger.info(f"Audio uploaded ({len(data)} bytes)")
        return upload_url

    async def submit(self, audio_url: str, config: TranscriptionConfig) -> str:
        body = {
            "audio_url": audio_url,
            "multichannel": config.multichannel,
            "speaker_labels": config.speaker_labels,
            "speaker_options": {
                "min_speakers_expected": config.min_speakers,
                "max_speakers_expected": config.max_speakers,
            },
        }
        payload = await self._request("POST", "/v2/transcript", TranscriptionTransportError, json=body)
        job_id = payload.get("id")
        if not job_id:
            raise TranscriptionTransportError("Transcription response did not contain an id")
        return job_id

    async def get_status(self, job_id: str) -> JobStatusResponse:
        payload = await self._request("GET", f"/v2/transcript/{job_id}", TranscriptionTransportError)
        return parse_transcript_payload(payload)
