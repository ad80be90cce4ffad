"""
Client sync state machine.

Drives one upload from the user's side: push the PDF to the blob store,
follow the processing record until a summary appears, then let the user
request more artifacts by flipping request flags on the record.

States only move forward:

    idle -> uploading -> success -> analyzing -> complete
                 \\                      \\
                  -> error                -> error

reset() returns to idle from anywhere and bumps the generation counter, so
snapshots still in flight for the previous upload are dropped.

Upload progress (reported from the transfer thread) and record snapshots
are both funnelled into the event loop that owns the session.

Dependencies: asyncio, studyspark.boundary, studyspark.core.enrichment
System role: Client-side view of the pipeline
"""

import asyncio
import copy
import logging
from contextlib import aclosing, suppress
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.core.enrichment.requests import request_enrichment
from studyspark.core.enrichment.task_queue import EnrichmentTaskQueue
from studyspark.core.exceptions import InvalidStateTransitionError
from studyspark.models.processing_record import (
    ERROR_MESSAGE,
    STATUS,
    SUMMARY,
    EnrichmentFeature,
    RecordStatus,
    SummaryMode,
    derive_document_id,
)
from studyspark.observability import log_with_context, summarize_record

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Upload failed. Please try again."
PROCESSING_FAILED_MESSAGE = "Processing failed. Please try again."


class UploadState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


ALLOWED_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.IDLE: frozenset({UploadState.UPLOADING}),
    UploadState.UPLOADING: frozenset({UploadState.SUCCESS, UploadState.ERROR}),
    UploadState.SUCCESS: frozenset({UploadState.ANALYZING}),
    UploadState.ANALYZING: frozenset({UploadState.COMPLETE, UploadState.ERROR}),
    UploadState.COMPLETE: frozenset(),
    UploadState.ERROR: frozenset(),
}


@dataclass(frozen=True)
class SessionView:
    """Immutable snapshot of the session handed to on_change."""

    state: UploadState
    progress: int
    document_id: str | None
    record: dict[str, Any] | None
    error_message: str | None
    busy: dict[EnrichmentFeature, bool] = field(default_factory=dict)


class StudySession:
    """One user's upload-and-study session."""

    def __init__(
        self,
        blob_store: S3BlobStore,
        record_store: ProcessingRecordStore,
        task_queue: EnrichmentTaskQueue,
        on_change: Callable[[SessionView], None] | None = None,
    ) -> None:
        """
        Initialize session.

        Requests only reach the enrichment trigger when `record_store` has it
        registered as a listener or runs its change feed.

        Args:
            blob_store: Uploads bucket
            record_store: Processing record store to follow
            task_queue: Enrichment task ledger guarding duplicate requests
            on_change: Called with a SessionView after every visible change
        """
        self._blob_store = blob_store
        self._record_store = record_store
        self._task_queue = task_queue
        self._on_change = on_change
        self._changed = asyncio.Event()
        self._subscription: asyncio.Task | None = None
        self._generation = 0
        self._clear()

    def _clear(self) -> None:
        self._state = UploadState.IDLE
        self._progress = 0
        self._document_id: str | None = None
        self._record: dict[str, Any] | None = None
        self._error_message: str | None = None
        self._busy = {feature: False for feature in EnrichmentFeature}
        self._baseline: dict[EnrichmentFeature, Any] = {}

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def document_id(self) -> str | None:
        return self._document_id

    @property
    def record(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._record)

    @property
    def error_message(self) -> str | None:
        return self._error_message

    def is_busy(self, feature: EnrichmentFeature) -> bool:
        return self._busy[feature]

    @property
    def view(self) -> SessionView:
        return SessionView(
            state=self._state,
            progress=self._progress,
            document_id=self._document_id,
            record=copy.deepcopy(self._record),
            error_message=self._error_message,
            busy=dict(self._busy),
        )

    async def start_upload(
        self,
        filename: str,
        data: bytes,
        mode: SummaryMode = SummaryMode.DETAILED,
    ) -> None:
        """
        Upload a PDF and start following its processing record.

        Any record left by a previous upload of the same name is deleted
        first so its old summary or error cannot be mistaken for the new one.

        Args:
            filename: Blob name (the document id is derived from it)
            data: PDF bytes
            mode: Summary mode stored as blob metadata

        Raises:
            InvalidStateTransitionError: Session is not idle
        """
        self._transition(UploadState.UPLOADING)
        generation = self._generation
        document_id = derive_document_id(filename)
        self._document_id = document_id
        self._progress = 0
        self._notify()

        try:
            await self._record_store.delete(document_id)
        except Exception as e:
            logger.warning(
                f"{__name__}:start_upload - Could not delete previous record: {type(e).__name__}: {e}",
                extra={"document_id": document_id},
            )

        loop = asyncio.get_running_loop()
        total = max(len(data), 1)
        sent = 0

        def _on_bytes(amount: int) -> None:
            nonlocal sent
            sent += amount
            percent = min(100, int(sent * 100 / total))
            loop.call_soon_threadsafe(self._set_progress, generation, percent)

        try:
            await self._blob_store.put(
                filename,
                data,
                metadata={"summaryMode": mode.value},
                progress_callback=_on_bytes,
            )
        except Exception as e:
            if generation != self._generation:
                return
            logger.error(
                f"{__name__}:start_upload - Upload failed: {type(e).__name__}: {e}",
                extra={"document_id": document_id},
            )
            self._error_message = UPLOAD_FAILED_MESSAGE
            self._transition(UploadState.ERROR)
            self._notify()
            return

        if generation != self._generation:
            return

        self._progress = 100
        self._transition(UploadState.SUCCESS)
        self._notify()
        self._transition(UploadState.ANALYZING)
        self._notify()
        self._subscription = asyncio.create_task(self._follow(document_id, generation))

    async def request_feature(self, feature: EnrichmentFeature) -> bool:
        """
        Ask the pipeline for an artifact by raising its request flag.

        Only allowed once the summary is complete, and only one outstanding
        request per artifact, whether this session or another caller made it.

        Args:
            feature: Artifact to request

        Returns:
            bool: False if the request was not sent (not complete, busy, or
                a task for the artifact is still running)
        """
        if self._state != UploadState.COMPLETE or self._busy[feature]:
            return False

        self._busy[feature] = True
        self._baseline[feature] = copy.deepcopy((self._record or {}).get(feature.data_field))
        self._notify()

        try:
            requested = await request_enrichment(
                self._record_store, self._task_queue, self._document_id, feature
            )
        except Exception:
            self._busy[feature] = False
            self._notify()
            raise

        if not requested:
            self._busy[feature] = False
            self._notify()
        return requested

    async def reset(self) -> None:
        """Cancel the subscription and return to idle. The record is left as is."""
        self._generation += 1
        task, self._subscription = self._subscription, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._clear()
        self._notify()

    async def close(self) -> None:
        await self.reset()

    async def wait_until(
        self,
        predicate: Callable[["StudySession"], bool],
        timeout: float | None = 10.0,
    ) -> None:
        """Wait until predicate(session) holds."""

        async def _wait() -> None:
            while not predicate(self):
                self._changed.clear()
                await self._changed.wait()

        await asyncio.wait_for(_wait(), timeout)

    async def wait_for_state(self, *states: UploadState, timeout: float | None = 10.0) -> UploadState:
        """Wait until the session reaches one of `states`."""
        await self.wait_until(lambda session: session.state in states, timeout)
        return self._state

    async def _follow(self, document_id: str, generation: int) -> None:
        async with aclosing(self._record_store.subscribe(document_id)) as snapshots:
            async for snapshot in snapshots:
                if generation != self._generation:
                    return
                if not self._apply_snapshot(snapshot):
                    return

    def _apply_snapshot(self, snapshot: dict[str, Any] | None) -> bool:
        """Fold one snapshot into the session. Returns False to stop following."""
        log_with_context(
            logger,
            logging.DEBUG,
            f"{__name__}:_apply_snapshot - Snapshot",
            document_id=self._document_id,
            state=self._state.value,
            record=summarize_record(snapshot),
        )
        if snapshot is None:
            return True

        if self._state == UploadState.ANALYZING:
            if snapshot.get(STATUS) == RecordStatus.ERROR.value:
                self._record = snapshot
                self._error_message = snapshot.get(ERROR_MESSAGE) or PROCESSING_FAILED_MESSAGE
                self._transition(UploadState.ERROR)
                self._notify()
                return False
            if snapshot.get(SUMMARY) is None:
                return True
            self._record = snapshot
            self._transition(UploadState.COMPLETE)
            self._notify()
            return True

        if self._state == UploadState.COMPLETE:
            self._record = snapshot
            self._release_busy(snapshot)
            self._notify()
            return True

        return False

    def _release_busy(self, snapshot: dict[str, Any]) -> None:
        for feature, busy in self._busy.items():
            if not busy or snapshot.get(feature.request_field) is True:
                continue
            data_changed = snapshot.get(feature.data_field) != self._baseline.get(feature)
            if data_changed or snapshot.get(feature.error_field) is not None:
                self._busy[feature] = False
                self._baseline.pop(feature, None)

    def _set_progress(self, generation: int, percent: int) -> None:
        if generation != self._generation or self._state != UploadState.UPLOADING:
            return
        if percent > self._progress:
            self._progress = percent
            self._notify()

    def _transition(self, target: UploadState) -> None:
        if target not in ALLOWED_TRANSITIONS[self._state]:
            raise InvalidStateTransitionError(self._state.value, target.value)
        logger.debug(f"{__name__}:_transition - {self._state.value} -> {target.value}")
        self._state = target

    def _notify(self) -> None:
        self._changed.set()
        if self._on_change is not None:
            self._on_change(self.view)
