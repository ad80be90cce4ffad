"""
Enrichment task ORM model.

Each newly requested artifact becomes one task row with its own id, so a
request is a discrete message that the enrichment worker acknowledges and
finalises, rather than only a flag diff on the shared record.

Dependencies: sqlalchemy, studyspark.boundary.db.base
System role: Request/acknowledge ledger for on-demand artifacts
"""

import enum

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from studyspark.boundary.db.base import Base, TimestampMixin, UUIDMixin
from studyspark.models.processing_record import EnrichmentFeature


class TaskStatus(str, enum.Enum):
    """
    Enrichment task states.

    PENDING: Enqueued from a newly requested flag
    RUNNING: Acknowledged by the enrichment worker
    COMPLETED: Artifact committed to the record
    FAILED: Error written to the record's error field
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EnrichmentTaskModel(Base, UUIDMixin, TimestampMixin):
    """
    Enrichment task row.

    Attributes:
        id: Task UUID
        document_id: Record the artifact belongs to
        feature: Requested artifact
        status: Task state
        error_message: Failure description (FAILED only)
    """

    __tablename__ = "enrichment_tasks"

    document_id: Mapped[str] = mapped_column(String(1024), nullable=False, index=True)

    feature: Mapped[EnrichmentFeature] = mapped_column(
        Enum(EnrichmentFeature, native_enum=False),
        nullable=False,
    )

    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, native_enum=False),
        nullable=False,
        default=TaskStatus.PENDING,
    )

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
