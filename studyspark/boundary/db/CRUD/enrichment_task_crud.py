"""
Enrichment task CRUD operations.

Sessions are passed in and never committed here; the task queue owns the
transaction boundary.

Dependencies: sqlalchemy, studyspark.boundary.db.models
System role: Persistence for the enrichment request ledger
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyspark.boundary.db.models.enrichment_task_model import EnrichmentTaskModel, TaskStatus
from studyspark.models.processing_record import EnrichmentFeature

OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.RUNNING)
MAX_ERROR_MESSAGE_LENGTH = 2000


class EnrichmentTaskCRUD:
    """CRUD operations for EnrichmentTaskModel."""

    async def create(
        self,
        session: AsyncSession,
        document_id: str,
        feature: EnrichmentFeature,
    ) -> EnrichmentTaskModel:
        """
        Insert a pending task and flush so its id and timestamps are populated.

        Args:
            session: Async database session
            document_id: Processing record id
            feature: Requested artifact

        Returns:
            The new task
        """
        task = EnrichmentTaskModel(
            document_id=document_id,
            feature=feature,
            status=TaskStatus.PENDING,
        )
        session.add(task)
        await session.flush()
        await session.refresh(task)
        return task

    async def get(self, session: AsyncSession, task_id: UUID) -> EnrichmentTaskModel | None:
        return await session.get(EnrichmentTaskModel, task_id)

    async def get_by_document(
        self,
        session: AsyncSession,
        document_id: str,
    ) -> Sequence[EnrichmentTaskModel]:
        """All tasks for a document, oldest first."""
        stmt = (
            select(EnrichmentTaskModel)
            .where(EnrichmentTaskModel.document_id == document_id)
            .order_by(EnrichmentTaskModel.created_at)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_open(
        self,
        session: AsyncSession,
        document_id: str,
        feature: EnrichmentFeature,
    ) -> Sequence[EnrichmentTaskModel]:
        """Pending or running tasks for one feature of a document."""
        stmt = select(EnrichmentTaskModel).where(
            EnrichmentTaskModel.document_id == document_id,
            EnrichmentTaskModel.feature == feature,
            EnrichmentTaskModel.status.in_(OPEN_STATUSES),
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def update_status(
        self,
        session: AsyncSession,
        task_id: UUID,
        status: TaskStatus,
        error_message: str | None = None,
    ) -> EnrichmentTaskModel | None:
        """
        Move a task to `status`, recording an error message for failures.

        Args:
            session: Async database session
            task_id: Task UUID
            status: New status
            error_message: Failure description, truncated to fit

        Returns:
            Updated task if found, None otherwise
        """
        task = await self.get(session, task_id)
        if task is None:
            return None
        task.status = status
        if error_message is not None:
            task.error_message = error_message[:MAX_ERROR_MESSAGE_LENGTH]
        await session.flush()
        await session.refresh(task)
        return task


enrichment_task_crud = EnrichmentTaskCRUD()
