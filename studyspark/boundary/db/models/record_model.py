"""
Processing record ORM model.

Stores each record as a JSON document keyed by document id. The version
column backs optimistic concurrency: every merge write is a compare-and-swap
on it, so ingestion and enrichment never lose each other's fields.

Dependencies: sqlalchemy, studyspark.boundary.db.base
System role: Persistence for the reactive processing record store
"""

from typing import Any

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studyspark.boundary.db.base import Base, TimestampMixin


class ProcessingRecordModel(Base, TimestampMixin):
    """
    Processing record row.

    Attributes:
        document_id: Blob name with extension stripped (primary key)
        fields: Record fields as a camelCase JSON object
        version: Incremented on every write
    """

    __tablename__ = "processing_records"

    document_id: Mapped[str] = mapped_column(String(1024), primary_key=True)

    fields: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )
