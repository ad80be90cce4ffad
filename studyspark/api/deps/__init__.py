"""API-specific dependencies."""

from .dependencies import (
    ServiceCache,
    get_blob_store,
    get_record_store,
    get_service_cache,
    get_settings_dependency,
    get_task_queue,
)

__all__ = [
    "ServiceCache",
    "get_blob_store",
    "get_record_store",
    "get_service_cache",
    "get_settings_dependency",
    "get_task_queue",
]
