"""
Document API endpoints.

Routes:
- POST /documents/upload-url - Presigned URL for direct S3 upload
- GET /documents/{document_id} - Current processing record
- DELETE /documents/{document_id} - Delete record (and its blob)
- POST /documents/{document_id}/requests/{feature} - Request an artifact
- GET /documents/{document_id}/tasks - Enrichment task history

Dependencies: studyspark.api.deps, studyspark.boundary, studyspark.models
System role: Document HTTP API
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from studyspark.api.deps import (
    get_blob_store,
    get_record_store,
    get_settings_dependency,
    get_task_queue,
)
from studyspark.api.routers.router_utils import PdfFilenameError
from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.configs import Settings
from studyspark.core.enrichment.requests import request_enrichment
from studyspark.core.enrichment.task_queue import EnrichmentTaskQueue
from studyspark.core.exceptions import BlobStoreError, RecordNotFoundError
from studyspark.models.document import (
    EnrichmentTaskResponse,
    FeatureRequestResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from studyspark.models.processing_record import (
    ORIGINAL_FILE,
    EnrichmentFeature,
    ProcessingRecord,
)

from .upload_url_handler import PresignFailedError, handle_upload_url_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(
    request: UploadUrlRequest,
    blob_store: S3BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings_dependency),
) -> UploadUrlResponse:
    """
    Generate presigned URL for direct S3 upload.

    The client PUTs the PDF with the returned headers, then follows the
    record under document_id.

    Raises:
        HTTPException(400): Invalid filename or extension
        HTTPException(500): Failed to generate URL
    """
    try:
        return handle_upload_url_request(
            request,
            blob_store,
            expires_in=settings.s3_documents.presigned_url_expiry,
        )
    except PdfFilenameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PresignFailedError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{document_id}", response_model=ProcessingRecord)
async def get_document(
    document_id: str,
    record_store: ProcessingRecordStore = Depends(get_record_store),
) -> ProcessingRecord:
    """
    Get the processing record.

    Raises:
        HTTPException(404): No record for this document
    """
    record = await record_store.get(document_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return ProcessingRecord.model_validate(record)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    record_store: ProcessingRecordStore = Depends(get_record_store),
    blob_store: S3BlobStore = Depends(get_blob_store),
) -> Response:
    """
    Delete the processing record and, if still present, its blob.

    Raises:
        HTTPException(404): No record for this document
    """
    record = await record_store.get(document_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")

    await record_store.delete(document_id)

    original_file = record.get(ORIGINAL_FILE)
    if original_file:
        try:
            await blob_store.delete(original_file)
        except BlobStoreError as e:
            # Janitor removes it within the retention window
            logger.warning(
                f"{__name__}:delete_document - Blob delete failed: {e}",
                extra={"document_id": document_id},
            )

    logger.info(f"{__name__}:delete_document - Deleted", extra={"document_id": document_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{document_id}/requests/{feature}",
    response_model=FeatureRequestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_feature(
    document_id: str,
    feature: EnrichmentFeature,
    record_store: ProcessingRecordStore = Depends(get_record_store),
    task_queue: EnrichmentTaskQueue = Depends(get_task_queue),
) -> FeatureRequestResponse:
    """
    Request an artifact by raising its flag on the record.

    Clears the artifact's previous error in the same write. Generation
    happens in the enrichment trigger.

    Raises:
        HTTPException(404): No record for this document
        HTTPException(409): A task for this artifact is still running
    """
    try:
        requested = await request_enrichment(record_store, task_queue, document_id, feature)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")

    if not requested:
        raise HTTPException(
            status_code=409,
            detail=f"A {feature.value} request is already pending",
        )
    return FeatureRequestResponse(document_id=document_id, feature=feature, requested=True)


@router.get("/{document_id}/tasks", response_model=list[EnrichmentTaskResponse])
async def list_tasks(
    document_id: str,
    task_queue: EnrichmentTaskQueue = Depends(get_task_queue),
) -> list[EnrichmentTaskResponse]:
    """Enrichment task history, oldest first."""
    return await task_queue.list_for_document(document_id)
