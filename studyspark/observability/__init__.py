"""
Observability module.

Provides logging configuration and structured logging helpers.
"""

from studyspark.observability.log_utils import log_with_context, safe_log_value, summarize_record
from studyspark.observability.logger import ContextFormatter, configure_logging

__all__ = [
    "ContextFormatter",
    "configure_logging",
    "log_with_context",
    "safe_log_value",
    "summarize_record",
]
