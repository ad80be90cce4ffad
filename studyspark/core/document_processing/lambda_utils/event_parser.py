"""
S3 event notification parsing for Lambda.

Accepts S3 notifications delivered directly to the function or wrapped in
SQS message bodies, and returns one StorageFinalizeEvent per object.
"""

import json
import logging
from typing import Any, Dict, List
from urllib.parse import unquote_plus

from studyspark.core.document_processing.ingestion_trigger import StorageFinalizeEvent
from studyspark.core.exceptions import EventParseError

logger = logging.getLogger(__name__)


def parse_s3_record(s3_record: Dict[str, Any]) -> StorageFinalizeEvent:
    """
    Parse one S3 notification record.

    {
        "eventSource": "aws:s3",
        "s3": {
            "bucket": {"name": "bucket-name"},
            "object": {"key": "3f2a9c1e-notes.pdf", "size": 1024}
        }
    }

    Raises:
        EventParseError: Not an S3 record or missing key
    """
    if s3_record.get("eventSource") != "aws:s3":
        raise EventParseError(f"Invalid event source: {s3_record.get('eventSource')}")

    s3_info = s3_record.get("s3", {})
    object_info = s3_info.get("object", {})

    # Keys arrive URL-encoded, spaces as '+'
    key = unquote_plus(object_info.get("key", ""))
    if not key:
        raise EventParseError("Missing S3 object key")

    return StorageFinalizeEvent(
        name=key,
        bucket=s3_info.get("bucket", {}).get("name", ""),
        size=object_info.get("size", 0) or 0,
    )


def parse_lambda_event(event: Dict[str, Any]) -> List[StorageFinalizeEvent]:
    """
    Extract finalize events from a Lambda invocation payload.

    Handles direct S3 notifications and SQS records whose body is an S3
    notification (possibly holding several records, or a single bare record).
    Test events (s3:TestEvent) carry no records and yield nothing.

    Raises:
        EventParseError: Malformed SQS body or S3 record
    """
    events: List[StorageFinalizeEvent] = []
    for record in event.get("Records", []):
        if record.get("eventSource") == "aws:sqs":
            body = record.get("body")
            if not body:
                raise EventParseError("Empty message body")
            try:
                payload = json.loads(body)
            except json.JSONDecodeError as e:
                raise EventParseError(f"Invalid JSON in message body: {e}") from e
            if "Records" in payload:
                s3_records = payload["Records"]
            elif "eventSource" in payload:
                s3_records = [payload]
            else:
                s3_records = []
            events.extend(parse_s3_record(s3_record) for s3_record in s3_records)
        else:
            events.append(parse_s3_record(record))

    logger.info(
        "parse_lambda_event - Parsed storage events",
        extra={"event_count": len(events)},
    )
    return events
