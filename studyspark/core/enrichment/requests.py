"""
Raising request flags.

The API and the client both request artifacts through request_enrichment so
the same guard applies everywhere: a live task blocks a second request, and
a flag left raised by a worker that never finished is lowered and raised
again so the trigger sees a fresh edge.

Dependencies: studyspark.boundary.db, studyspark.core.enrichment.task_queue
System role: Single entry point for on-demand requests
"""

import logging

from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.core.enrichment.task_queue import EnrichmentTaskQueue
from studyspark.core.exceptions import RecordNotFoundError
from studyspark.models.processing_record import EnrichmentFeature

logger = logging.getLogger(__name__)


async def request_enrichment(
    record_store: ProcessingRecordStore,
    task_queue: EnrichmentTaskQueue,
    document_id: str,
    feature: EnrichmentFeature,
) -> bool:
    """
    Raise `feature`'s request flag and clear its previous error.

    Args:
        record_store: Store the enrichment trigger listens on
        task_queue: Task ledger of the same database
        document_id: Processing record id
        feature: Artifact to request

    Returns:
        bool: False if a live task for the artifact is still open

    Raises:
        RecordNotFoundError: No record for this document
    """
    if await task_queue.has_open(document_id, feature):
        return False

    record = await record_store.get(document_id)
    if record is None:
        raise RecordNotFoundError(document_id)

    if record.get(feature.request_field) is True:
        logger.warning(
            f"{__name__}:request_enrichment - Flag raised with no live task, re-arming",
            extra={"document_id": document_id, "feature": feature.value},
        )
        await record_store.update(document_id, {feature.request_field: False})

    await record_store.update(
        document_id,
        {feature.request_field: True, feature.error_field: None},
    )
    logger.info(
        f"{__name__}:request_enrichment - Requested {feature.value}",
        extra={"document_id": document_id},
    )
    return True
