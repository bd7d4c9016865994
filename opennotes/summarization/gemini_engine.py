"""Gemini engine for sending prompts and getting responses."""

import asyncio
import logging
from typing import Any, Dict

import aiohttp

from ..errors import RateLimitError, SummarizationProviderError

logger = logging.getLogger(__name__)


def raise_for_status(status: int, error_text: str) -> None:
    """Turn a non-success HTTP status into the matching provider error."""
    if status < 300:
        return
    if status == 429:
        raise RateLimitError(f"Gemini API rate limited: {error_text}", status=status)
    raise SummarizationProviderError(f"Gemini API error: {status} - {error_text}", status=status)


def extract_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        raise SummarizationProviderError("Gemini API returned no candidates")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()


class GeminiSummarizationEngine:
    """Sends prompts to the Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com",
        temperature: float = 0.3,
        max_output_tokens: int = 2048,
        request_timeout: float = 120.0,
    ):
        """Initialize Gemini engine.

        Args:
            api_key: Gemini API key
            model: Gemini model to use for summarization
            base_url: API root
            temperature: Temperature for response generation (0.0 to 1.0)
            max_output_tokens: Maximum tokens in response
            request_timeout: Total timeout per request in seconds
        """
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/v1beta/models/{model}:generateContent"
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)

        logger.info(f"GeminiSummarizationEngine initialized with model: {model}")

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Send the prompts to Gemini and return the reply text."""
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        data = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [
                {"role": "user", "parts": [{"text": user_prompt}]}
            ],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, headers=headers, json=data) as response:
                    if response.status >= 300:
                        raise_for_status(response.status, await response.text())
                    result = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SummarizationProviderError(f"Gemini request failed: {e}") from e

        return extract_text(result)
