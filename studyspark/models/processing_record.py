"""
Processing record domain model.

One record per uploaded document, keyed by the document id derived from the
blob name. Records travel through the store as plain dicts with camelCase
keys; the constants and enums here are the single source of those names.

Dependencies: pydantic
System role: Shared contract between triggers, client and API
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Record field names
STATUS = "status"
ORIGINAL_FILE = "originalFile"
PROCESSED_AT = "processedAt"
MODEL_FILE_HANDLE = "modelFileHandle"
SUMMARY_MODE = "summaryMode"
SUMMARY = "summary"
CHEAT_SHEET_SUMMARY = "cheatSheetSummary"
DETAILED_SUMMARY = "detailedSummary"
HAS_DETAILED_SUMMARY = "hasDetailedSummary"
FLASHCARDS = "flashcards"
QUIZ = "quiz"
ERROR_MESSAGE = "errorMessage"

# Fields a merge write may set once but never change
IMMUTABLE_FIELDS = (MODEL_FILE_HANDLE,)

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class RecordStatus(str, Enum):
    """Processing lifecycle. ERROR is terminal."""

    PROCESSING = "processing"
    SUMMARY_COMPLETED = "summary_completed"
    ERROR = "error"


class SummaryMode(str, Enum):
    """Which summary prompt variant runs at ingestion."""

    CHEAT_SHEET = "cheat-sheet"
    DETAILED = "detailed"

    @classmethod
    def parse(cls, value: str | None, default: "SummaryMode") -> "SummaryMode":
        """Lenient conversion from blob metadata; unknown values fall back to default."""
        if not value:
            return default
        normalized = value.strip().lower().replace("_", "-")
        for mode in cls:
            if mode.value == normalized:
                return mode
        return default


class EnrichmentFeature(str, Enum):
    """On-demand artifacts requested through edge-triggered flags."""

    DETAILED_SUMMARY = "detailed_summary"
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"

    @property
    def request_field(self) -> str:
        return _FEATURE_FIELDS[self][0]

    @property
    def data_field(self) -> str:
        return _FEATURE_FIELDS[self][1]

    @property
    def error_field(self) -> str:
        return _FEATURE_FIELDS[self][2]


_FEATURE_FIELDS = {
    EnrichmentFeature.DETAILED_SUMMARY: ("requestDetailedSummary", DETAILED_SUMMARY, "summaryError"),
    EnrichmentFeature.FLASHCARDS: ("requestFlashcards", FLASHCARDS, "flashcardsError"),
    EnrichmentFeature.QUIZ: ("requestQuiz", QUIZ, "quizError"),
}


def derive_document_id(blob_name: str) -> str:
    """
    Derive the record key from a blob name by stripping its last extension.

    Args:
        blob_name: Object name in the bucket (e.g. "notes/week1.pdf")

    Returns:
        str: Document id (e.g. "notes/week1")
    """
    return _EXTENSION_RE.sub("", blob_name)


class ProcessingRecord(BaseModel):
    """Typed view over a stored record (API responses)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", protected_namespaces=())

    status: RecordStatus | None = None
    original_file: str | None = Field(default=None, alias=ORIGINAL_FILE)
    processed_at: str | None = Field(default=None, alias=PROCESSED_AT)
    model_file_handle: str | None = Field(default=None, alias=MODEL_FILE_HANDLE)
    summary_mode: SummaryMode | None = Field(default=None, alias=SUMMARY_MODE)
    summary: dict[str, Any] | None = None
    cheat_sheet_summary: dict[str, Any] | None = Field(default=None, alias=CHEAT_SHEET_SUMMARY)
    detailed_summary: dict[str, Any] | None = Field(default=None, alias=DETAILED_SUMMARY)
    has_detailed_summary: bool = Field(default=False, alias=HAS_DETAILED_SUMMARY)
    flashcards: list[dict[str, Any]] | None = None
    quiz: list[dict[str, Any]] | None = None
    request_detailed_summary: bool = Field(default=False, alias="requestDetailedSummary")
    request_flashcards: bool = Field(default=False, alias="requestFlashcards")
    request_quiz: bool = Field(default=False, alias="requestQuiz")
    summary_error: str | None = Field(default=None, alias="summaryError")
    flashcards_error: str | None = Field(default=None, alias="flashcardsError")
    quiz_error: str | None = Field(default=None, alias="quizError")
    error_message: str | None = Field(default=None, alias=ERROR_MESSAGE)
