"""
Domain models and API schemas.
"""

from studyspark.models.processing_record import (
    EnrichmentFeature,
    ProcessingRecord,
    RecordStatus,
    SummaryMode,
    derive_document_id,
)
from studyspark.models.study_material import (
    CheatSheetSummary,
    DetailedSummary,
    Flashcard,
    FlashcardDeck,
    Quiz,
    QuizQuestion,
)

__all__ = [
    "EnrichmentFeature",
    "ProcessingRecord",
    "RecordStatus",
    "SummaryMode",
    "derive_document_id",
    "CheatSheetSummary",
    "DetailedSummary",
    "Flashcard",
    "FlashcardDeck",
    "Quiz",
    "QuizQuestion",
]
