"""Summary data model."""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Summary:
    """Structured summary of one transcript.

    ``transcript_id`` is a plain reference; the summary does not own the
    transcript.
    """
    id: str
    transcript_id: str
    context: str
    summary_markdown: str
    generated_at: str  # ISO-8601
    participants: List[str] = field(default_factory=list)
    key_points: List[str] = field(default_factory=list)
    action_items: List[str] = field(default_factory=list)
