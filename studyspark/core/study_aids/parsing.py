"""
Model response parsing.

Turns raw model text into the payloads stored on the processing record.
Responses are requested as JSON, but some models still wrap the output in a
markdown code fence, so fences are stripped before decoding. Validation is
structural only (pydantic schemas in studyspark.models.study_material).

Dependencies: json, pydantic
System role: Validation step shared by ingestion and enrichment
"""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from studyspark.core.exceptions import ModelResponseParseError
from studyspark.models.processing_record import EnrichmentFeature, SummaryMode
from studyspark.models.study_material import (
    CheatSheetSummary,
    DetailedSummary,
    FlashcardDeck,
    Quiz,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _decode(text: str, artifact: str) -> Any:
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(
            f"{__name__}:_decode - Invalid JSON for {artifact}: {e}",
            extra={"preview": cleaned[:200]},
        )
        raise ModelResponseParseError(f"Model returned invalid JSON: {e.msg}", artifact) from e


def _unwrap_list(payload: Any, key: str) -> dict[str, Any]:
    # Accept a bare array as well as {"key": [...]}
    if isinstance(payload, list):
        return {key: payload}
    return payload


def parse_summary(text: str, mode: SummaryMode) -> dict[str, Any]:
    """
    Parse a summary response for the given mode.

    Args:
        text: Raw model output
        mode: Summary mode the prompt was chosen for

    Returns:
        dict: Summary payload ({"cheat_sheet": [...]} or five-section guide)

    Raises:
        ModelResponseParseError: Not JSON or wrong shape
    """
    payload = _decode(text, "summary")
    schema = CheatSheetSummary if mode == SummaryMode.CHEAT_SHEET else DetailedSummary
    try:
        return schema.model_validate(payload).model_dump()
    except ValidationError as e:
        raise ModelResponseParseError(
            f"Summary does not match the {mode.value} format",
            "summary",
            {"errors": e.error_count()},
        ) from e


def parse_flashcards(text: str) -> list[dict[str, str]]:
    """
    Parse a flashcards response.

    Returns:
        list: [{"front": ..., "back": ...}]

    Raises:
        ModelResponseParseError: Not JSON or wrong shape
    """
    payload = _unwrap_list(_decode(text, "flashcards"), "flashcards")
    try:
        deck = FlashcardDeck.model_validate(payload)
    except ValidationError as e:
        raise ModelResponseParseError(
            "Flashcards do not match the expected format",
            "flashcards",
            {"errors": e.error_count()},
        ) from e
    return [card.model_dump() for card in deck.flashcards]


def parse_quiz(text: str) -> list[dict[str, Any]]:
    """
    Parse a quiz response. Every answer must equal one of its options.

    Returns:
        list: [{"question", "options", "answer", "explanation"}]

    Raises:
        ModelResponseParseError: Not JSON or wrong shape
    """
    payload = _unwrap_list(_decode(text, "quiz"), "quiz")
    try:
        quiz = Quiz.model_validate(payload)
    except ValidationError as e:
        raise ModelResponseParseError(
            "Quiz does not match the expected format",
            "quiz",
            {"errors": e.error_count()},
        ) from e
    return [question.model_dump() for question in quiz.quiz]


def parse_enrichment(feature: EnrichmentFeature, text: str) -> Any:
    """Parse the response for an enrichment feature."""
    if feature == EnrichmentFeature.DETAILED_SUMMARY:
        return parse_summary(text, SummaryMode.DETAILED)
    if feature == EnrichmentFeature.FLASHCARDS:
        return parse_flashcards(text)
    return parse_quiz(text)
