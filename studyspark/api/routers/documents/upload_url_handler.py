"""
Upload URL handler.

Turns an upload request into a presigned PUT for a freshly named blob. The
summary mode rides along as object metadata for the ingestion trigger.

Dependencies: botocore, studyspark.api.routers.router_utils, studyspark.boundary.aws
System role: Upload URL request handling
"""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from studyspark.api.routers.router_utils import PdfFilenameError, blob_name_for, check_pdf_filename
from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.models.document import UploadUrlRequest, UploadUrlResponse
from studyspark.models.processing_record import derive_document_id

logger = logging.getLogger(__name__)


class PresignFailedError(Exception):
    """S3 could not sign the upload URL."""


def handle_upload_url_request(
    request: UploadUrlRequest,
    blob_store: S3BlobStore,
    expires_in: int = 900,
) -> UploadUrlResponse:
    """
    Validate the filename, name the blob and presign its upload.

    Raises:
        PdfFilenameError: Filename rejected
        PresignFailedError: Signing failed
    """
    try:
        check_pdf_filename(request.filename)
    except PdfFilenameError as e:
        logger.warning(
            f"{__name__}:handle_upload_url_request - Rejected filename: {e}",
            extra={"file_name": request.filename},
        )
        raise

    blob_name = blob_name_for(request.filename)
    metadata = {"summaryMode": request.summary_mode.value}
    try:
        url, expires_at, headers = blob_store.generate_presigned_upload_url(
            blob_name, metadata=metadata, expires_in=expires_in
        )
    except (BotoCoreError, ClientError) as e:
        logger.exception(
            f"{__name__}:handle_upload_url_request - Presign failed",
            extra={"blob_name": blob_name},
        )
        raise PresignFailedError(f"Failed to generate upload URL: {e}") from e

    logger.info(
        f"{__name__}:handle_upload_url_request - Upload URL issued",
        extra={"blob_name": blob_name, **metadata},
    )
    return UploadUrlResponse(
        presigned_url=url,
        blob_name=blob_name,
        document_id=derive_document_id(blob_name),
        expires_at=expires_at.isoformat(),
        headers=headers,
    )
