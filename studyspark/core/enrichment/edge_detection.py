"""
Request flag edge detection.

A feature is newly requested when its flag is true after the write and was
not true before it. Re-writing an already-true flag, or any unrelated write,
requests nothing.
"""

from typing import Any, Mapping

from studyspark.models.processing_record import EnrichmentFeature


def detect_new_requests(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
) -> list[EnrichmentFeature]:
    """
    Features whose request flag rose from not-true to true.

    Args:
        before: Record before the write (None if it did not exist)
        after: Record after the write (None if deleted)

    Returns:
        list[EnrichmentFeature]: Newly requested features, in declaration order
    """
    if not after:
        return []
    before = before or {}
    return [
        feature
        for feature in EnrichmentFeature
        if after.get(feature.request_field) is True and before.get(feature.request_field) is not True
    ]
