"""
Database boundary layer: ORM models, CRUD operations, connection management
and the reactive processing record store.

Dependencies: sqlalchemy, studyspark.configs
System role: Persistent storage for processing records and enrichment tasks
"""

from studyspark.boundary.db.base import Base, TimestampMixin, UUIDMixin
from studyspark.boundary.db.connection import (
    create_all_tables,
    build_async_engine,
    get_async_engine,
    get_async_session_factory,
)
from studyspark.boundary.db.models import EnrichmentTaskModel, ProcessingRecordModel, TaskStatus
from studyspark.boundary.db.record_store import ProcessingRecordStore, RecordChange

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "create_all_tables",
    "build_async_engine",
    "get_async_engine",
    "get_async_session_factory",
    "EnrichmentTaskModel",
    "ProcessingRecordModel",
    "TaskStatus",
    "ProcessingRecordStore",
    "RecordChange",
]
