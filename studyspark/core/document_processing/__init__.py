"""
Upload ingestion: finalize event to processing record with a first summary.

Dependencies: studyspark.boundary, studyspark.core.retry, studyspark.core.study_aids
System role: Background processing on upload
"""

from .ingestion_trigger import IngestionResult, IngestionTrigger, StorageFinalizeEvent

__all__ = ["IngestionResult", "IngestionTrigger", "StorageFinalizeEvent"]
