"""Protocol for summarization engines."""

from typing import Protocol


class SummarizationEngine(Protocol):
    """Anything that turns a system prompt and a user prompt into text."""

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's reply.

        Raises:
            RateLimitError: the provider throttled the request
            SummarizationProviderError: any other non-success answer
        """
        ...
