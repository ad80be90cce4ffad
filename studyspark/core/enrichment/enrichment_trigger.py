"""
Enrichment trigger.

Reacts to processing record writes. For each feature whose request flag was
newly set (see edge_detection), generates the artifact from the file already
uploaded to the model and merges it into the record. Features are handled
one after another and committed one at a time, so a failing feature never
blocks or rolls back its siblings. Every path resets the consumed flag.

Flow per feature:
    enqueue task -> acknowledge -> prompt -> model call (retry wrapper)
    -> parse -> complete task -> merge {artifact, flag=False, error=None}

A task is always finalised before the write that lowers its flag.

Dependencies: studyspark.boundary, studyspark.core.retry, studyspark.core.study_aids
System role: On-demand artifact generation
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from studyspark.boundary.db.record_store import ProcessingRecordStore, RecordChange
from studyspark.boundary.genai.gemini_client import GeminiClient
from studyspark.core.enrichment.edge_detection import detect_new_requests
from studyspark.core.enrichment.task_queue import EnrichmentTaskQueue
from studyspark.core.exceptions import (
    MissingFileHandleError,
    ModelResponseParseError,
    RecordNotFoundError,
    StudySparkException,
)
from studyspark.core.retry import RetryPolicy, call_with_retry
from studyspark.core.study_aids import enrichment_prompt_for, parse_enrichment
from studyspark.models.processing_record import (
    CHEAT_SHEET_SUMMARY,
    HAS_DETAILED_SUMMARY,
    MODEL_FILE_HANDLE,
    SUMMARY,
    SUMMARY_MODE,
    EnrichmentFeature,
    SummaryMode,
)
from studyspark.observability import log_with_context

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500
INTERRUPTED_MESSAGE = "Generation interrupted before completing"

FEATURE_LABELS = {
    EnrichmentFeature.DETAILED_SUMMARY: "detailed summary",
    EnrichmentFeature.FLASHCARDS: "flashcards",
    EnrichmentFeature.QUIZ: "quiz",
}


@dataclass(frozen=True)
class FeatureOutcome:
    """Result of one requested feature."""

    feature: EnrichmentFeature
    succeeded: bool
    task_id: UUID | None = None
    error: str | None = None


def describe_feature_failure(feature: EnrichmentFeature, error: BaseException) -> str:
    """Human-readable message for a feature's error field."""
    label = FEATURE_LABELS[feature]
    if isinstance(error, ModelResponseParseError):
        message = f"Could not read the generated {label}. Please try again."
    elif isinstance(error, StudySparkException):
        message = f"Failed to generate {label}: {error.message}"
    else:
        message = f"Failed to generate {label}: {error}"
    return message[:MAX_ERROR_LENGTH]


def describe_busy_feature(feature: EnrichmentFeature) -> str:
    return f"Your {FEATURE_LABELS[feature]} is already being generated. Please wait for it to finish."


def detailed_summary_fields(record: dict[str, Any], detailed: dict[str, Any]) -> dict[str, Any]:
    """
    Record fields for a successful on-demand detailed summary.

    The summary shown before the request is kept under cheatSheetSummary when
    it was a cheat sheet, unless one has already been kept.
    """
    fields: dict[str, Any] = {
        EnrichmentFeature.DETAILED_SUMMARY.data_field: detailed,
        SUMMARY: detailed,
        SUMMARY_MODE: SummaryMode.DETAILED.value,
        HAS_DETAILED_SUMMARY: True,
    }
    previous = record.get(SUMMARY)
    was_cheat_sheet = record.get(SUMMARY_MODE) == SummaryMode.CHEAT_SHEET.value
    if was_cheat_sheet and previous is not None and record.get(CHEAT_SHEET_SUMMARY) is None:
        fields[CHEAT_SHEET_SUMMARY] = previous
    return fields


class EnrichmentTrigger:
    """Record-store listener that generates requested artifacts."""

    def __init__(
        self,
        record_store: ProcessingRecordStore,
        task_queue: EnrichmentTaskQueue,
        gemini: GeminiClient,
        retry_policy: RetryPolicy,
    ) -> None:
        self._record_store = record_store
        self._task_queue = task_queue
        self._gemini = gemini
        self._retry_policy = retry_policy

    async def __call__(self, change: RecordChange) -> list[FeatureOutcome]:
        return await self.handle_change(change)

    async def handle_change(self, change: RecordChange) -> list[FeatureOutcome]:
        """
        Process the features newly requested by one record write.

        A feature whose live task is still open is answered on the record
        (flag lowered, error set) instead of being generated twice. Tasks
        left unfinished by an unexpected error are failed before it
        propagates.

        Args:
            change: Before/after snapshots of the write

        Returns:
            list[FeatureOutcome]: One entry per requested feature, empty if
                nothing was newly requested
        """
        features = detect_new_requests(change.before, change.after)
        if not features:
            return []

        document_id = change.document_id
        record = change.after or {}

        tasks: dict[EnrichmentFeature, UUID] = {}
        busy: list[EnrichmentFeature] = []
        for feature in features:
            task_id = await self._task_queue.enqueue(document_id, feature)
            if task_id is None:
                busy.append(feature)
            else:
                tasks[feature] = task_id

        outcomes = []
        if busy:
            outcomes.extend(await self._reject_busy(document_id, busy))
        if not tasks:
            return outcomes

        logger.info(
            f"{__name__}:handle_change - START",
            extra={"document_id": document_id, "features": [f.value for f in tasks]},
        )

        file_handle = record.get(MODEL_FILE_HANDLE)
        if not file_handle:
            outcomes.extend(await self._reject_missing_handle(document_id, tasks))
            return outcomes

        unfinished = dict(tasks)
        try:
            for feature, task_id in tasks.items():
                outcome = await self._process_feature(document_id, record, file_handle, feature, task_id)
                outcomes.append(outcome)
                del unfinished[feature]
        finally:
            for feature, task_id in unfinished.items():
                if await self._task_queue.abandon(task_id, INTERRUPTED_MESSAGE):
                    logger.error(
                        f"{__name__}:handle_change - Abandoned unfinished task",
                        extra={"document_id": document_id, "feature": feature.value, "task_id": str(task_id)},
                    )

        logger.info(
            f"{__name__}:handle_change - END",
            extra={
                "document_id": document_id,
                "succeeded": [o.feature.value for o in outcomes if o.succeeded],
                "failed": [o.feature.value for o in outcomes if not o.succeeded],
            },
        )
        return outcomes

    async def _process_feature(
        self,
        document_id: str,
        record: dict[str, Any],
        file_handle: str,
        feature: EnrichmentFeature,
        task_id: UUID,
    ) -> FeatureOutcome:
        await self._task_queue.acknowledge(task_id)
        prompt = enrichment_prompt_for(feature)

        try:
            raw = await call_with_retry(
                lambda: self._gemini.generate_json(file_handle, prompt),
                self._retry_policy,
                operation=feature.value,
            )
            artifact = parse_enrichment(feature, raw)
        except Exception as e:
            return await self._fail_feature(document_id, feature, task_id, e)

        if feature == EnrichmentFeature.DETAILED_SUMMARY:
            fields = detailed_summary_fields(record, artifact)
        else:
            fields = {feature.data_field: artifact}
        fields[feature.request_field] = False
        fields[feature.error_field] = None

        # Task must be closed before the flag is lowered
        await self._task_queue.complete(task_id)
        try:
            await self._record_store.update(document_id, fields)
        except RecordNotFoundError as e:
            # Record deleted mid-flight (client re-upload); nothing left to mark
            logger.warning(
                f"{__name__}:_process_feature - Record gone: {e}",
                extra={"document_id": document_id, "feature": feature.value},
            )
            await self._task_queue.fail(task_id, str(e))
            return FeatureOutcome(feature, False, task_id, str(e))
        except Exception as e:
            return await self._fail_feature(document_id, feature, task_id, e)

        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:_process_feature - Committed",
            document_id=document_id,
            feature=feature.value,
            artifact=artifact,
        )
        return FeatureOutcome(feature, True, task_id)

    async def _fail_feature(
        self,
        document_id: str,
        feature: EnrichmentFeature,
        task_id: UUID,
        error: Exception,
    ) -> FeatureOutcome:
        logger.error(
            f"{__name__}:_process_feature - {type(error).__name__}: {error}",
            extra={"document_id": document_id, "feature": feature.value},
        )
        message = describe_feature_failure(feature, error)
        await self._mark_failed(document_id, {feature: task_id}, message)
        return FeatureOutcome(feature, False, task_id, message)

    async def _reject_busy(
        self,
        document_id: str,
        features: list[EnrichmentFeature],
    ) -> list[FeatureOutcome]:
        logger.warning(
            f"{__name__}:_reject_busy - Live task already open",
            extra={"document_id": document_id, "features": [f.value for f in features]},
        )
        fields: dict[str, Any] = {}
        messages = {}
        for feature in features:
            messages[feature] = describe_busy_feature(feature)
            fields[feature.request_field] = False
            fields[feature.error_field] = messages[feature]
        await self._write_failure_fields(document_id, fields)
        return [FeatureOutcome(feature, False, None, messages[feature]) for feature in features]

    async def _reject_missing_handle(
        self,
        document_id: str,
        tasks: dict[EnrichmentFeature, UUID],
    ) -> list[FeatureOutcome]:
        message = MissingFileHandleError(document_id).message
        logger.warning(
            f"{__name__}:_reject_missing_handle - No model file handle",
            extra={"document_id": document_id},
        )
        await self._mark_failed(document_id, tasks, message)
        return [FeatureOutcome(feature, False, task_id, message) for feature, task_id in tasks.items()]

    async def _mark_failed(
        self,
        document_id: str,
        tasks: dict[EnrichmentFeature, UUID],
        message: str,
    ) -> None:
        fields: dict[str, Any] = {}
        for feature in tasks:
            fields[feature.error_field] = message
            fields[feature.request_field] = False
        try:
            for task_id in tasks.values():
                await self._task_queue.fail(task_id, message)
        finally:
            await self._write_failure_fields(document_id, fields)

    async def _write_failure_fields(self, document_id: str, fields: dict[str, Any]) -> None:
        try:
            await self._record_store.update(document_id, fields)
        except RecordNotFoundError as e:
            logger.warning(
                f"{__name__}:_write_failure_fields - Record gone: {e}",
                extra={"document_id": document_id},
            )
