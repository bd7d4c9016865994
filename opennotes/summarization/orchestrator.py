"""Summarizes transcripts with bounded retries."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from ..errors import MalformedResponseError, RateLimitError, SummarizationFailedError
from ..models.summary import Summary
from ..models.transcription import Transcript
from .base import SummarizationEngine
from .prompts import SYSTEM_PROMPT, build_user_prompt
from .schema import SummaryPayload, parse_summary_payload

logger = logging.getLogger(__name__)

LOCAL_CHANNEL = "1"
HOST_SPEAKER = "A"


def speaker_label(speaker_id: str, channel: Optional[str] = None) -> str:
    """Human-readable role for a diarized speaker id.

    Multichannel ids carry the channel as a numeric prefix ("1A", "2B").
    Channel 1 is the local microphone, every other channel is call audio.
    """
    letter = speaker_id
    if channel and speaker_id.startswith(channel) and len(speaker_id) > len(channel):
        letter = speaker_id[len(channel):]
    elif channel is None and len(speaker_id) > 1 and speaker_id[0].isdigit():
        channel, letter = speaker_id[0], speaker_id[1:]

    if channel is None:
        return f"Speaker {speaker_id}"
    if channel == LOCAL_CHANNEL:
        return "You (Host)" if letter == HOST_SPEAKER else f"Speaker {channel}{letter}"
    return f"Participant {letter}"


def format_transcript(transcript: Transcript) -> str:
    """Speaker-labelled lines when utterances exist, otherwise the raw text."""
    if not transcript.utterances:
        return transcript.text
    return "\n\n".join(
        f"[{speaker_label(u.speaker_id, u.channel)}]: {u.text}" for u in transcript.utterances
    )


class SummarizationOrchestrator:
    """Retry policy around a summarization engine.

    Rate limits back off exponentially, malformed replies retry after a short
    fixed pause, and anything else stops immediately.
    """

    def __init__(
        self,
        engine: SummarizationEngine,
        max_attempts: int = 3,
        malformed_retry_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.max_attempts = max_attempts
        self.malformed_retry_delay = malformed_retry_delay
        self._sleep = sleep

    async def summarize(self, transcript: Transcript) -> Summary:
        """Produce a Summary for ``transcript``.

        Raises:
            SummarizationFailedError: retries exhausted or a non-retryable error
        """
        user_prompt = build_user_prompt(
            format_transcript(transcript),
            transcript.duration_seconds,
            len(transcript.speaker_ids),
        )

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await self.engine.generate(SYSTEM_PROMPT, user_prompt)
                payload = parse_summary_payload(text)
            except RateLimitError as e:
                last_error, delay = e, float(2 ** attempt)
            except MalformedResponseError as e:
                last_error, delay = e, self.malformed_retry_delay
            except Exception as e:
                logger.error(f"Summarization attempt {attempt} failed, not retrying: {e}")
                raise SummarizationFailedError(attempt, e) from e
            else:
                logger.info(f"Summary generated on attempt {attempt}")
                return self._build_summary(transcript, payload)

            logger.warning(f"Summarization attempt {attempt} failed: {last_error}")
            if attempt < self.max_attempts:
                await self._sleep(delay)

        raise SummarizationFailedError(self.max_attempts, last_error) from last_error

    @staticmethod
    def _build_summary(transcript: Transcript, payload: SummaryPayload) -> Summary:
        return Summary(
            id=str(uuid.uuid4()),
            transcript_id=transcript.id,
            context=payload.context,
            summary_markdown=payload.summary_markdown,
            generated_at=datetime.now(timezone.utc).isoformat(),
            participants=list(payload.participants),
            key_points=list(payload.key_points),
            action_items=list(payload.action_items),
        )
