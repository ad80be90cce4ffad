"""
CRUD operations.
"""

from studyspark.boundary.db.CRUD.enrichment_task_crud import EnrichmentTaskCRUD, enrichment_task_crud

__all__ = ["EnrichmentTaskCRUD", "enrichment_task_crud"]
