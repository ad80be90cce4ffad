"""
Blob janitor.

Hourly sweep that deletes uploads older than the retention window.
Processing records are never swept; only the blobs they were made from.

Dependencies: studyspark.boundary.aws
System role: Storage retention
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.core.exceptions import BlobStoreError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BlobJanitor:
    """Deletes blobs created before now - retention."""

    def __init__(
        self,
        blob_store: S3BlobStore,
        retention: timedelta = timedelta(hours=2),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize janitor.

        Args:
            blob_store: Uploads bucket
            retention: Age after which a blob is deleted
            clock: Current time source (timezone-aware)
        """
        self._blob_store = blob_store
        self._retention = retention
        self._clock = clock

    async def sweep(self) -> int:
        """
        Delete every blob strictly older than the retention window.

        A blob that cannot be deleted is logged and left for the next sweep.

        Returns:
            int: Number of blobs deleted
        """
        cutoff = self._clock() - self._retention
        deleted = 0
        failed = 0
        for blob in await self._blob_store.list():
            created = blob.time_created
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            if created >= cutoff:
                continue
            try:
                await self._blob_store.delete(blob.name)
            except BlobStoreError as e:
                failed += 1
                logger.warning(
                    f"{__name__}:sweep - Could not delete {blob.name}: {e.message}",
                    extra={"blob": blob.name},
                )
                continue
            deleted += 1
            logger.debug(f"{__name__}:sweep - Deleted {blob.name}")

        logger.info(
            f"{__name__}:sweep - Deleted {deleted} expired blob(s), {failed} failed",
            extra={"deleted": deleted, "failed": failed, "cutoff": cutoff.isoformat()},
        )
        return deleted
