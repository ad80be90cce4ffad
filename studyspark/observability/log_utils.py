"""
Logging helpers for study artifacts and processing records.

Summaries, decks and quizzes can run to many kilobytes; log lines carry
their shape (item counts, which record fields are set) instead of content.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from typing import Any, Mapping

MAX_VALUE_LENGTH = 200


def safe_log_value(value: Any, max_length: int = MAX_VALUE_LENGTH) -> str:
    """
    Render a value for a log line without dumping payloads.

    Lists become "list(12 items)", dicts list their keys, strings are cut
    at max_length.
    """
    if value is None:
        return "None"
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}({len(value)} items)"
    if isinstance(value, Mapping):
        rendered = f"dict(keys={','.join(str(key) for key in value)})"
    else:
        rendered = str(value)
    if len(rendered) > max_length:
        return f"{rendered[:max_length]}... ({len(rendered)} chars)"
    return rendered


def summarize_record(snapshot: Mapping[str, Any] | None) -> str:
    """
    One-line shape of a processing record: status plus the fields that hold a value.

    {"status": "summary_completed", "summary": {...}, "quiz": None}
    renders as "status=summary_completed set=summary".
    """
    if snapshot is None:
        return "absent"
    present = sorted(key for key, value in snapshot.items() if key != "status" and value is not None)
    return f"status={snapshot.get('status')} set={','.join(present) or '-'}"


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context,
) -> None:
    """Log `message` with every context value passed through safe_log_value."""
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, extra={key: safe_log_value(val) for key, val in context.items()})
