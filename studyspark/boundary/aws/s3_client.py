"""
S3 blob store for uploaded PDFs.

Blob operations the pipeline needs: put with custom metadata and progress,
download to a local path, metadata lookup, delete, listing with
creation times, and presigned upload URLs for browser uploads.

boto3 is synchronous; the async methods run it in a worker thread.

Dependencies: boto3
System role: Blob storage boundary
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from studyspark.core.exceptions import BlobStoreError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class BlobInfo:
    """Listing entry."""

    name: str
    time_created: datetime


class S3BlobStore:
    """S3 client for the uploads bucket."""

    def __init__(self, bucket: str, region: str = "us-east-1", s3_client: Any = None) -> None:
        """
        Initialize S3 blob store.

        Args:
            bucket: S3 bucket name for uploaded documents
            region: AWS region for S3 bucket
            s3_client: Pre-built boto3 S3 client (defaults to a new one)
        """
        self._bucket = bucket
        self._region = region
        self._s3_client = s3_client or boto3.client("s3", region_name=region)

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put(
        self,
        name: str,
        data: bytes,
        metadata: dict[str, str] | None = None,
        progress_callback: Callable[[int], None] | None = None,
        content_type: str = PDF_CONTENT_TYPE,
    ) -> None:
        """
        Upload bytes with custom metadata.

        Args:
            name: Object key
            data: File content
            metadata: User metadata (e.g. {"summaryMode": "cheat-sheet"})
            progress_callback: Called from the transfer thread with the
                number of bytes sent since the previous call
            content_type: MIME type stored with the object

        Raises:
            BlobStoreError: Upload failed
        """
        extra_args = {"ContentType": content_type, "Metadata": dict(metadata or {})}
        try:
            await asyncio.to_thread(
                self._s3_client.upload_fileobj,
                io.BytesIO(data),
                self._bucket,
                name,
                ExtraArgs=extra_args,
                Callback=progress_callback,
            )
        except (ClientError, S3UploadFailedError) as e:
            raise BlobStoreError(f"Failed to upload to S3: {e}", name) from e

        logger.info(
            f"{__name__}:put - Uploaded object",
            extra={"name": name, "size_bytes": len(data)},
        )

    async def download_to(self, name: str, local_path: str) -> str:
        """
        Download an object to a local file.

        Args:
            name: Object key
            local_path: Destination path

        Returns:
            str: local_path

        Raises:
            BlobStoreError: Object missing or download failed
        """
        try:
            await asyncio.to_thread(
                self._s3_client.download_file,
                Bucket=self._bucket,
                Key=name,
                Filename=local_path,
            )
            return local_path
        except ClientError as e:
            raise BlobStoreError(_describe(e, name), name) from e

    async def get_metadata(self, name: str) -> dict[str, str]:
        """
        Read an object's user metadata.

        S3 lowercases user metadata keys, so callers should look keys up
        case-insensitively.

        Raises:
            BlobStoreError: Object missing or request failed
        """
        try:
            response = await asyncio.to_thread(
                self._s3_client.head_object, Bucket=self._bucket, Key=name
            )
        except ClientError as e:
            raise BlobStoreError(_describe(e, name), name) from e
        return dict(response.get("Metadata") or {})

    async def delete(self, name: str) -> None:
        """
        Delete an object. Deleting a missing key is not an error in S3.

        Raises:
            BlobStoreError: Request failed
        """
        try:
            await asyncio.to_thread(self._s3_client.delete_object, Bucket=self._bucket, Key=name)
        except ClientError as e:
            raise BlobStoreError(_describe(e, name), name) from e

    async def list(self, prefix: str = "") -> list[BlobInfo]:
        """
        List all objects with their creation times.

        S3 objects are immutable, so LastModified is the creation time.

        Args:
            prefix: Optional key prefix

        Returns:
            list[BlobInfo]: Every object under the prefix
        """

        def _list() -> list[BlobInfo]:
            paginator = self._s3_client.get_paginator("list_objects_v2")
            blobs = []
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    blobs.append(BlobInfo(name=obj["Key"], time_created=obj["LastModified"]))
            return blobs

        try:
            return await asyncio.to_thread(_list)
        except ClientError as e:
            raise BlobStoreError(f"Failed to list bucket {self._bucket}: {e}") from e

    def generate_presigned_upload_url(
        self,
        name: str,
        metadata: dict[str, str] | None = None,
        content_type: str = PDF_CONTENT_TYPE,
        expires_in: int = 900,
    ) -> tuple[str, datetime, dict[str, str]]:
        """
        Generate presigned URL for a direct browser upload.

        Metadata is part of the signature, so the browser must send the
        returned headers with its PUT.

        Args:
            name: Object key
            metadata: User metadata to attach
            content_type: MIME type of the file
            expires_in: URL expiry in seconds

        Returns:
            tuple[str, datetime, dict[str, str]]: (presigned_url, expires_at, required_headers)

        Raises:
            ClientError: If presigned URL generation fails
        """
        metadata = dict(metadata or {})
        presigned_url = self._s3_client.generate_presigned_url(
            ClientMethod="put_object",
            Params={
                "Bucket": self._bucket,
                "Key": name,
                "ContentType": content_type,
                "Metadata": metadata,
            },
            ExpiresIn=expires_in,
        )
        headers = {"Content-Type": content_type}
        headers.update({f"x-amz-meta-{key.lower()}": value for key, value in metadata.items()})
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
        return presigned_url, expires_at, headers


def _describe(error: ClientError, name: str) -> str:
    error_code = error.response.get("Error", {}).get("Code", "Unknown")
    if error_code in ("404", "NoSuchKey"):
        return f"File not found in S3: {name}"
    return f"S3 request failed for {name}: {error}"
