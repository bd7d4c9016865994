"""Summarization module for OpenNotes."""

from .base import SummarizationEngine
from .gemini_engine import GeminiSummarizationEngine
from .orchestrator import SummarizationOrchestrator, format_transcript, speaker_label
from .schema import SummaryPayload, parse_summary_payload

__all__ = [
    "SummarizationEngine",
    "GeminiSummarizationEngine",
    "SummarizationOrchestrator",
    "SummaryPayload",
    "format_transcript",
    "parse_summary_payload",
    "speaker_label",
]
