"""
Enrichment task queue.

Every newly requested artifact is recorded as a task row that the
enrichment worker acknowledges (pending -> running) and finalises
(completed | failed). Requests are therefore queryable on their own,
independent of the record's flag history.

An open task whose worker died stops blocking once it has gone
`stale_after` without a status change; the next enqueue fails it.

Dependencies: sqlalchemy, studyspark.boundary.db.CRUD
System role: Request ledger for on-demand artifacts
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyspark.boundary.db.base import utc_now
from studyspark.boundary.db.CRUD.enrichment_task_crud import OPEN_STATUSES, enrichment_task_crud
from studyspark.boundary.db.models.enrichment_task_model import EnrichmentTaskModel, TaskStatus
from studyspark.models.document import EnrichmentTaskResponse
from studyspark.models.processing_record import EnrichmentFeature

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=15)
STALE_TASK_MESSAGE = "Task expired without completing"


class EnrichmentTaskQueue:
    """Task ledger over the enrichment_tasks table. One transaction per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize task queue.

        Args:
            session_factory: Async session factory for the records database
            stale_after: Age past which an open task no longer blocks
            clock: Current UTC time
        """
        self._session_factory = session_factory
        self._stale_after = stale_after
        self._clock = clock

    async def enqueue(self, document_id: str, feature: EnrichmentFeature) -> UUID | None:
        """
        Create a pending task unless a live one is already open for this feature.

        Stale open tasks are failed first and do not count.

        Args:
            document_id: Processing record id
            feature: Requested artifact

        Returns:
            UUID of the new task, None if a live task is pending or running
        """
        async with self._session_factory() as session:
            if await self._live_open_tasks(session, document_id, feature):
                await session.commit()
                logger.info(
                    f"{__name__}:enqueue - Task already open, skipping",
                    extra={"document_id": document_id, "feature": feature.value},
                )
                return None
            task = await enrichment_task_crud.create(session, document_id, feature)
            await session.commit()
            return task.id

    async def has_open(self, document_id: str, feature: EnrichmentFeature) -> bool:
        """Whether a live (not stale) task for this feature is pending or running."""
        async with self._session_factory() as session:
            live = await self._live_open_tasks(session, document_id, feature)
            await session.commit()
            return bool(live)

    async def acknowledge(self, task_id: UUID) -> None:
        """Mark task as picked up by the worker."""
        await self._set_status(task_id, TaskStatus.RUNNING)

    async def complete(self, task_id: UUID) -> None:
        """Mark task as done. Called before the flag-lowering record write."""
        await self._set_status(task_id, TaskStatus.COMPLETED)

    async def fail(self, task_id: UUID, error_message: str) -> None:
        """Mark task as failed with the message written to the record."""
        await self._set_status(task_id, TaskStatus.FAILED, error_message)

    async def abandon(self, task_id: UUID, error_message: str) -> bool:
        """Fail the task only if it is still pending or running."""
        async with self._session_factory() as session:
            task = await enrichment_task_crud.get(session, task_id)
            if task is None or task.status not in OPEN_STATUSES:
                return False
            await enrichment_task_crud.update_status(session, task_id, TaskStatus.FAILED, error_message)
            await session.commit()
            return True

    async def list_for_document(self, document_id: str) -> list[EnrichmentTaskResponse]:
        """
        Task history of a document, oldest first.

        Args:
            document_id: Processing record id

        Returns:
            list[EnrichmentTaskResponse]: Tasks
        """
        async with self._session_factory() as session:
            tasks = await enrichment_task_crud.get_by_document(session, document_id)
            return [EnrichmentTaskResponse.model_validate(task) for task in tasks]

    async def _set_status(
        self,
        task_id: UUID,
        status: TaskStatus,
        error_message: str | None = None,
    ) -> None:
        async with self._session_factory() as session:
            task = await enrichment_task_crud.update_status(session, task_id, status, error_message)
            if task is None:
                logger.warning(
                    f"{__name__}:_set_status - Task not found",
                    extra={"task_id": str(task_id), "status": status.value},
                )
                return
            await session.commit()

    async def _live_open_tasks(
        self,
        session: AsyncSession,
        document_id: str,
        feature: EnrichmentFeature,
    ) -> Sequence[EnrichmentTaskModel]:
        """Open tasks still inside the staleness window; stale ones are failed in `session`."""
        cutoff = self._clock() - self._stale_after
        live = []
        for task in await enrichment_task_crud.get_open(session, document_id, feature):
            touched = task.updated_at
            if touched.tzinfo is None:
                touched = touched.replace(tzinfo=timezone.utc)
            if touched >= cutoff:
                live.append(task)
                continue
            logger.warning(
                f"{__name__}:_live_open_tasks - Expiring stale task",
                extra={
                    "task_id": str(task.id),
                    "document_id": document_id,
                    "feature": feature.value,
                    "updated_at": touched.isoformat(),
                },
            )
            await enrichment_task_crud.update_status(
                session, task.id, TaskStatus.FAILED, STALE_TASK_MESSAGE
            )
        return live
