"""
Ingestion trigger.

Runs once per finalized upload: download the PDF, hand it to the model's
file endpoint, write the initial processing record, generate the summary
in the mode chosen at upload time and store it.

Flow:
    finalize event -> PDF check -> download to temp dir -> model file upload
    -> summaryMode metadata -> initial record -> summary call -> parse
    -> summary_completed

Any failure after the PDF check leaves the record at status=error with a
human-readable errorMessage. The temp directory is always removed.

Dependencies: studyspark.boundary, studyspark.core.retry, studyspark.core.study_aids
System role: Background processing on upload
"""

import logging
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.boundary.genai.gemini_client import GeminiClient
from studyspark.core.exceptions import ModelResponseParseError, StudySparkException
from studyspark.core.retry import RetryPolicy, call_with_retry
from studyspark.core.study_aids import parse_summary, summary_prompt_for
from studyspark.models.processing_record import (
    ERROR_MESSAGE,
    MODEL_FILE_HANDLE,
    ORIGINAL_FILE,
    PROCESSED_AT,
    STATUS,
    SUMMARY,
    SUMMARY_MODE,
    RecordStatus,
    SummaryMode,
    derive_document_id,
)

logger = logging.getLogger(__name__)

SUMMARY_MODE_METADATA_KEY = "summaryMode"
MAX_ERROR_MESSAGE_LENGTH = 500


class StorageFinalizeEvent(BaseModel):
    """Object-finalized notification from the blob store."""

    name: str = Field(..., description="Object key")
    bucket: str = Field(..., description="Bucket name")
    size: int = Field(default=0, ge=0, description="Object size in bytes")


class IngestionResult(BaseModel):
    """Outcome of one trigger invocation."""

    document_id: Optional[str] = Field(default=None, description="None when skipped")
    status: str = Field(..., description="skipped | summary_completed | error")
    processing_time_ms: int = Field(default=0, ge=0)
    error: Optional[str] = None


def is_pdf(name: str) -> bool:
    """PDF check on the object name, case-insensitive."""
    return name.lower().endswith(".pdf")


def lookup_summary_mode(metadata: dict[str, str], default: SummaryMode) -> SummaryMode:
    """Read summaryMode from blob metadata; S3 lowercases metadata keys."""
    for key, value in metadata.items():
        if key.lower() == SUMMARY_MODE_METADATA_KEY.lower():
            return SummaryMode.parse(value, default)
    return default


def describe_failure(error: BaseException) -> str:
    """Human-readable errorMessage for a failed ingestion."""
    if isinstance(error, ModelResponseParseError):
        message = "The AI response could not be read. Please upload the PDF again."
    elif isinstance(error, StudySparkException):
        message = f"Failed to process the PDF: {error.message}"
    else:
        message = f"Failed to process the PDF: {error}"
    return message[:MAX_ERROR_MESSAGE_LENGTH]


class IngestionTrigger:
    """Processes finalized uploads into processing records."""

    def __init__(
        self,
        blob_store: S3BlobStore,
        record_store: ProcessingRecordStore,
        gemini: GeminiClient,
        retry_policy: RetryPolicy,
        default_mode: SummaryMode = SummaryMode.DETAILED,
    ) -> None:
        self._blob_store = blob_store
        self._record_store = record_store
        self._gemini = gemini
        self._retry_policy = retry_policy
        self._default_mode = default_mode

    async def handle(self, event: StorageFinalizeEvent) -> IngestionResult:
        """
        Process one finalize event.

        Non-PDF objects are skipped without any writes or model calls.
        Errors are recorded on the processing record, not raised.

        Args:
            event: Finalize notification

        Returns:
            IngestionResult: Final status of the document
        """
        if not is_pdf(event.name):
            logger.info(
                f"{__name__}:handle - Not a PDF, skipping",
                extra={"name": event.name},
            )
            return IngestionResult(status="skipped")

        document_id = derive_document_id(event.name)
        start_time = time.perf_counter()
        temp_dir = tempfile.mkdtemp(prefix="studyspark_")

        logger.info(
            f"{__name__}:handle - START",
            extra={"document_id": document_id, "bucket": event.bucket, "size": event.size},
        )

        try:
            await self._process(event, document_id, temp_dir)
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            logger.info(
                f"{__name__}:handle - END",
                extra={"document_id": document_id, "processing_time_ms": elapsed_ms},
            )
            return IngestionResult(
                document_id=document_id,
                status=RecordStatus.SUMMARY_COMPLETED.value,
                processing_time_ms=elapsed_ms,
            )
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(
                f"{__name__}:handle - {type(e).__name__}: {e}",
                extra={"document_id": document_id},
                exc_info=True,
            )
            error_message = describe_failure(e)
            await self._record_failure(document_id, error_message)
            return IngestionResult(
                document_id=document_id,
                status=RecordStatus.ERROR.value,
                processing_time_ms=elapsed_ms,
                error=error_message,
            )
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def _process(self, event: StorageFinalizeEvent, document_id: str, temp_dir: str) -> None:
        # Step 1: Download into the transient workspace
        local_path = os.path.join(temp_dir, os.path.basename(event.name) or "upload.pdf")
        await self._blob_store.download_to(event.name, local_path)

        # Step 2: Hand the file to the model provider
        file_handle = await call_with_retry(
            lambda: self._gemini.upload_file(local_path),
            self._retry_policy,
            operation="file_upload",
        )

        # Step 3: Summary mode chosen at upload time
        metadata = await self._blob_store.get_metadata(event.name)
        mode = lookup_summary_mode(metadata, self._default_mode)

        # Step 4: Initial record; overwrites any record from a previous upload
        await self._record_store.set(
            document_id,
            {
                STATUS: RecordStatus.PROCESSING.value,
                ORIGINAL_FILE: event.name,
                PROCESSED_AT: datetime.now(timezone.utc).isoformat(),
                MODEL_FILE_HANDLE: file_handle,
                SUMMARY_MODE: mode.value,
            },
            merge=False,
        )

        # Step 5: Summary
        prompt = summary_prompt_for(mode)
        raw = await call_with_retry(
            lambda: self._gemini.generate_json(file_handle, prompt),
            self._retry_policy,
            operation=f"summary[{mode.value}]",
        )
        summary = parse_summary(raw, mode)

        # Step 6: Done
        await self._record_store.update(
            document_id,
            {SUMMARY: summary, STATUS: RecordStatus.SUMMARY_COMPLETED.value},
        )

    async def _record_failure(self, document_id: str, error_message: str) -> None:
        try:
            await self._record_store.set(
                document_id,
                {STATUS: RecordStatus.ERROR.value, ERROR_MESSAGE: error_message},
                merge=True,
            )
        except Exception as e:
            logger.error(
                f"{__name__}:_record_failure - Could not record failure: {type(e).__name__}: {e}",
                extra={"document_id": document_id},
            )
