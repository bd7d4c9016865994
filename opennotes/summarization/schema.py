"""Validation of the untrusted summary payload returned by the model."""

import json
import re
from typing import List

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ..errors import MalformedResponseError

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class SummaryPayload(BaseModel):
    """The JSON object the model is asked to return."""
    context: str = Field(min_length=1)
    summary_markdown: str = Field(
        min_length=1,
        validation_alias=AliasChoices("summaryMarkdown", "summary"),
    )
    participants: List[str] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list, validation_alias="keyPoints")
    action_items: List[str] = Field(default_factory=list, validation_alias="actionItems")


def parse_summary_payload(text: str) -> SummaryPayload:
    """Extract the embedded JSON object from ``text`` and validate it.

    Raises:
        MalformedResponseError: no JSON object, invalid JSON, or missing/empty required fields
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise MalformedResponseError("No JSON found in response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("Response JSON is not an object")

    try:
        return SummaryPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Missing required fields in response: {e}") from e
