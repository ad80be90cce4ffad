"""
Dependency injection container.

Factory functions for FastAPI dependencies. Long-lived clients (engine,
record store, S3, Gemini) are built once per process and shared by all
requests; the enrichment trigger listens on the shared record store.

Dependencies: studyspark.configs, studyspark.boundary, studyspark.core
System role: DI container for service injection
"""

from datetime import timedelta
from functools import lru_cache

from studyspark.boundary.aws.s3_client import S3BlobStore
from studyspark.boundary.db.connection import get_async_session_factory
from studyspark.boundary.db.record_store import ProcessingRecordStore
from studyspark.boundary.genai.gemini_client import GeminiClient
from studyspark.configs import Settings, get_settings
from studyspark.core.enrichment.enrichment_trigger import EnrichmentTrigger
from studyspark.core.enrichment.task_queue import EnrichmentTaskQueue
from studyspark.core.retry import RetryPolicy


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings
        self._session_factory = None
        self._record_store = None
        self._blob_store = None
        self._gemini = None
        self._task_queue = None
        self._enrichment_trigger = None
        self._enrichment_wired = False

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def session_factory(self):
        """Get cached async session factory."""
        if self._session_factory is None:
            self._session_factory = get_async_session_factory()
        return self._session_factory

    @property
    def record_store(self) -> ProcessingRecordStore:
        """Get cached processing record store."""
        if self._record_store is None:
            self._record_store = ProcessingRecordStore(
                self.session_factory,
                poll_interval=self.settings.pipeline.subscription_poll_interval,
            )
        return self._record_store

    @property
    def blob_store(self) -> S3BlobStore:
        """Get cached S3 blob store."""
        if self._blob_store is None:
            self._blob_store = S3BlobStore(
                bucket=self.settings.s3_documents.bucket,
                region=self.settings.s3_documents.region,
            )
        return self._blob_store

    @property
    def gemini(self) -> GeminiClient:
        """Get cached Gemini client."""
        if self._gemini is None:
            self._gemini = GeminiClient(
                api_key=self.settings.gemini.api_key,
                model_id=self.settings.gemini.model_id,
                temperature=self.settings.gemini.temperature,
            )
        return self._gemini

    @property
    def task_queue(self) -> EnrichmentTaskQueue:
        """Get cached enrichment task queue."""
        if self._task_queue is None:
            self._task_queue = EnrichmentTaskQueue(
                self.session_factory,
                stale_after=timedelta(seconds=self.settings.pipeline.task_stale_after_seconds),
            )
        return self._task_queue

    @property
    def enrichment_trigger(self) -> EnrichmentTrigger:
        """Get cached enrichment trigger."""
        if self._enrichment_trigger is None:
            self._enrichment_trigger = EnrichmentTrigger(
                record_store=self.record_store,
                task_queue=self.task_queue,
                gemini=self.gemini,
                retry_policy=RetryPolicy.from_settings(self.settings.pipeline),
            )
        return self._enrichment_trigger

    def wire_enrichment(self) -> None:
        """Register the enrichment trigger on the record store (once)."""
        if not self._enrichment_wired:
            self.record_store.add_listener(self.enrichment_trigger)
            self._enrichment_wired = True

    def clear(self) -> None:
        """Clear all cached instances."""
        self._session_factory = None
        self._record_store = None
        self._blob_store = None
        self._gemini = None
        self._task_queue = None
        self._enrichment_trigger = None
        self._enrichment_wired = False


@lru_cache
def get_service_cache() -> ServiceCache:
    """Process-wide service cache."""
    return ServiceCache()


def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_record_store() -> ProcessingRecordStore:
    """Get the shared processing record store."""
    return get_service_cache().record_store


def get_blob_store() -> S3BlobStore:
    """Get the shared S3 blob store."""
    return get_service_cache().blob_store


def get_task_queue() -> EnrichmentTaskQueue:
    """Get the shared enrichment task queue."""
    return get_service_cache().task_queue
