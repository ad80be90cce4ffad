"""
ORM models.
"""

from studyspark.boundary.db.models.enrichment_task_model import EnrichmentTaskModel, TaskStatus
from studyspark.boundary.db.models.record_model import ProcessingRecordModel

__all__ = ["EnrichmentTaskModel", "ProcessingRecordModel", "TaskStatus"]
