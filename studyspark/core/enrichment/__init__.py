"""
On-demand enrichment: edge-triggered requests for detailed summary,
flashcards and quiz.

Exports: EnrichmentTrigger, EnrichmentTaskQueue, detect_new_requests, request_enrichment
"""

from .edge_detection import detect_new_requests
from .enrichment_trigger import EnrichmentTrigger, FeatureOutcome
from .requests import request_enrichment
from .task_queue import EnrichmentTaskQueue

__all__ = [
    "EnrichmentTaskQueue",
    "EnrichmentTrigger",
    "FeatureOutcome",
    "detect_new_requests",
    "request_enrichment",
]
